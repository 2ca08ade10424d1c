from typing import Iterable
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from menorah_live.models.campaign import MenorahSegment


class DonationStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total_amount: int
    donation_count: int
    percent_complete: float
    lit_segments: list[str]

    def to_public(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def stats_to_public(stats: DonationStats | None) -> dict | None:
    # None when the totals could not be read back after a committed write
    return stats.to_public() if stats is not None else None


def lit_segment_ids(percent_complete: float, segments: Iterable[MenorahSegment]) -> list[str]:
    # Lowest order first, i.e. bottom of the menorah
    ordered = sorted(segments, key=lambda segment: segment.order)
    return [segment.id for segment in ordered if percent_complete >= segment.threshold_percent]


def compute_stats(
    total_amount: int,
    donation_count: int,
    goal_amount: int,
    segments: Iterable[MenorahSegment],
) -> DonationStats:
    """
    Derives campaign progress from ledger totals and the configured segments.

    Pure function shared by the read endpoints and the post-mutation broadcast,
    so both report identical numbers for the same ledger state.
    """
    if goal_amount <= 0:
        raise ValueError("goal_amount must be positive")

    percent_complete = max(0.0, min(100.0, total_amount / goal_amount * 100))

    return DonationStats(
        total_amount=total_amount,
        donation_count=donation_count,
        percent_complete=percent_complete,
        lit_segments=lit_segment_ids(percent_complete, segments),
    )

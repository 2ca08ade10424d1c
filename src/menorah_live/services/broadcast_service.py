import itertools
import logging
from typing import Any, Protocol

from menorah_live.models.campaign import CampaignConfig
from menorah_live.models.donation import Donation
from menorah_live.models.stats import DonationStats, stats_to_public

logger = logging.getLogger(__name__)

DONATION_NEW = "donation:new"
DONATION_UPDATED = "donation:updated"
DONATION_DELETED = "donation:deleted"
CONFIG_UPDATED = "config:updated"
GIF_TRIGGER = "gif:trigger"


class Publisher(Protocol):
    async def broadcast(self, message: dict[str, Any]) -> int: ...


class BroadcastCoordinator:
    """
    Publishes one event per committed mutation to every subscriber.

    Events carry a server-side sequence number in publish order. Delivery
    problems are logged and never reach the caller, the mutation behind the
    event is already stored.
    """

    def __init__(self, publisher: Publisher):
        self.publisher = publisher
        self._sequence = itertools.count(1)

    async def emit_donation_new(self, donation: Donation, stats: DonationStats | None) -> None:
        await self._publish(DONATION_NEW, donation=donation.to_public(), stats=stats_to_public(stats))

    async def emit_donation_updated(self, donation: Donation, stats: DonationStats | None) -> None:
        await self._publish(DONATION_UPDATED, donation=donation.to_public(), stats=stats_to_public(stats))

    async def emit_donation_deleted(self, donation: Donation, stats: DonationStats | None) -> None:
        await self._publish(
            DONATION_DELETED,
            donationId=donation.id,
            donation=donation.to_public(),
            stats=stats_to_public(stats),
        )

    async def emit_config_updated(self, config: CampaignConfig, stats: DonationStats | None) -> None:
        await self._publish(CONFIG_UPDATED, config=config.to_public(), stats=stats_to_public(stats))

    async def emit_gif_trigger(self, gif_url: str, audio_url: str | None = None) -> None:
        await self._publish(GIF_TRIGGER, gifUrl=gif_url, audioUrl=audio_url)

    async def _publish(self, event_type: str, **payload: Any) -> None:
        message = {"type": event_type, "sequence": next(self._sequence), **payload}
        try:
            delivered = await self.publisher.broadcast(message)
            logger.info(f"Published {event_type} #{message['sequence']} to {delivered} clients")
        except Exception:
            logger.exception(f"Failed to publish {event_type} #{message['sequence']}")

import logging
from typing import Any
from pydantic import ValidationError as PydanticValidationError

from menorah_live.core.clock import advance, now_utc
from menorah_live.core.errors import NotFoundError, ValidationError, from_pydantic
from menorah_live.data_access.dynamodb import DynamoDataAccess
from menorah_live.models.donation import Donation, DonationCreate, DonationPatch
from menorah_live.models.premium_words import (
    PREMIUM_WORDS,
    PremiumWordAvailability,
    resolve_premium_word,
    tier_amount,
)
from menorah_live.models.stats import DonationStats, compute_stats
from menorah_live.services.config_service import ConfigService

logger = logging.getLogger(__name__)

STRICT = "strict"
ADVISORY = "advisory"


class LedgerService:
    """
    Owns the donation lifecycle.

    Callers that need the premium word uniqueness guarantee must serialize
    create/update calls; CampaignService does that for the HTTP layer.
    """

    def __init__(
        self,
        data_access: DynamoDataAccess,
        config_service: ConfigService,
        premium_word_policy: str = STRICT,
    ):
        if premium_word_policy not in (STRICT, ADVISORY):
            raise ValueError(f"Unknown premium word policy: {premium_word_policy}")
        self.data_access = data_access
        self.config_service = config_service
        self.premium_word_policy = premium_word_policy

    def get_all(self) -> list[Donation]:
        return self.data_access.list_donations()

    def get_by_id(self, donation_id: int) -> Donation:
        donation = self.data_access.get_donation(donation_id)
        if donation is None:
            raise NotFoundError(f"Donation {donation_id} not found")
        return donation

    def create(self, payload: Any) -> Donation:
        data = self._parse(DonationCreate, payload)
        word_id = self._allocate_word(data.premium_word_id, data.amount)

        now = now_utc()
        donation = Donation(
            id=self.data_access.next_donation_id(),
            first_name=data.first_name,
            last_name=data.last_name,
            amount=data.amount,
            email=data.email,
            phone=data.phone,
            reference=data.reference,
            premium_word_id=word_id,
            created_at=now,
            updated_at=now,
        )
        self.data_access.insert_donation(donation)

        logger.info(f"Created donation {donation.id} for {donation.amount}")
        return donation

    def update(self, donation_id: int, payload: Any) -> Donation:
        patch = self._parse(DonationPatch, payload)
        existing = self.get_by_id(donation_id)

        provided = patch.provided()
        changes = {
            field: getattr(patch, field)
            for field in provided
            if field != "premium_word_id"
        }

        # A word stays only while it matches the tier of the effective amount
        amount = changes.get("amount", existing.amount)
        candidate = patch.premium_word_id if "premium_word_id" in provided else existing.premium_word_id
        word_id = self._allocate_word(candidate, amount, donation_id=donation_id)
        if word_id != existing.premium_word_id:
            changes["premium_word_id"] = word_id

        changes["updated_at"] = advance(existing.updated_at)
        donation = self.data_access.update_donation(donation_id, changes)

        logger.info(f"Updated donation {donation_id}: {sorted(changes)}")
        return donation

    def delete(self, donation_id: int) -> Donation:
        donation = self.data_access.delete_donation(donation_id)
        if donation.premium_word_id:
            logger.info(f"Premium word {donation.premium_word_id} released by donation {donation_id}")
        logger.info(f"Deleted donation {donation_id}")
        return donation

    def get_totals(self) -> tuple[int, int]:
        return self.data_access.get_totals()

    def get_stats(self) -> DonationStats:
        total_amount, donation_count = self.get_totals()
        config = self.config_service.get()
        return compute_stats(
            total_amount,
            donation_count,
            config.goal_amount,
            config.menorah_segments,
        )

    def get_premium_words(self) -> list[PremiumWordAvailability]:
        holders: dict[str, Donation] = {}
        for donation in self.get_all():
            if donation.premium_word_id:
                holders.setdefault(donation.premium_word_id, donation)

        words = []
        for word in PREMIUM_WORDS:
            holder = holders.get(word.id)
            words.append(
                PremiumWordAvailability(
                    **word.model_dump(),
                    amount=tier_amount(word.tier),
                    available=holder is None,
                    donor_name=holder.donor_name if holder else None,
                )
            )
        return words

    def _allocate_word(self, candidate: str | None, amount: int, donation_id: int | None = None) -> str | None:
        word_id = resolve_premium_word(candidate, amount)
        if candidate and word_id is None:
            logger.info(f"Discarding premium word {candidate!r}: not available for amount {amount}")
            return None

        if word_id and self.premium_word_policy == STRICT:
            holder = self._holder_of(word_id)
            if holder is not None and holder.id != donation_id:
                raise ValidationError(f"premium word '{word_id}' is already taken")

        return word_id

    def _holder_of(self, word_id: str) -> Donation | None:
        for donation in self.get_all():
            if donation.premium_word_id == word_id:
                return donation
        return None

    @staticmethod
    def _parse(model, payload: Any):
        if not isinstance(payload, dict):
            raise ValidationError("donation must be an object")
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise from_pydantic(e) from e

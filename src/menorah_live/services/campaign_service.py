import asyncio
import logging
from typing import Any
from fastapi.concurrency import run_in_threadpool

from menorah_live.core.errors import StorageError
from menorah_live.models.campaign import CampaignConfig
from menorah_live.models.donation import Donation
from menorah_live.models.premium_words import PremiumWordAvailability
from menorah_live.models.stats import DonationStats
from menorah_live.services.broadcast_service import BroadcastCoordinator
from menorah_live.services.config_service import ConfigService
from menorah_live.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class CampaignService:
    """
    Entry point used by the HTTP layer.

    Each mutation validates, persists, recomputes stats from the stored state
    and publishes its event while holding one lock, so mutations never
    interleave and events leave in the order the mutations completed. The
    stats returned to the caller are the ones that were broadcast.

    Only the write itself can fail a mutation. If the stats cannot be read
    back afterwards, the mutation is still acknowledged and broadcast with
    ``stats`` set to None, which tells clients to re-read.
    """

    def __init__(
        self,
        ledger: LedgerService,
        config_service: ConfigService,
        broadcaster: BroadcastCoordinator,
    ):
        self.ledger = ledger
        self.config_service = config_service
        self.broadcaster = broadcaster
        self._mutation_lock = asyncio.Lock()

    # ---------- mutations ----------

    async def create_donation(self, payload: Any) -> tuple[Donation, DonationStats | None]:
        async with self._mutation_lock:
            donation = await run_in_threadpool(self.ledger.create, payload)
            stats = await self._stats_after_write(f"creating donation {donation.id}")
            await self.broadcaster.emit_donation_new(donation, stats)
        return donation, stats

    async def update_donation(self, donation_id: int, payload: Any) -> tuple[Donation, DonationStats | None]:
        async with self._mutation_lock:
            donation = await run_in_threadpool(self.ledger.update, donation_id, payload)
            stats = await self._stats_after_write(f"updating donation {donation_id}")
            await self.broadcaster.emit_donation_updated(donation, stats)
        return donation, stats

    async def delete_donation(self, donation_id: int) -> tuple[Donation, DonationStats | None]:
        async with self._mutation_lock:
            donation = await run_in_threadpool(self.ledger.delete, donation_id)
            stats = await self._stats_after_write(f"deleting donation {donation_id}")
            await self.broadcaster.emit_donation_deleted(donation, stats)
        return donation, stats

    async def update_config(self, payload: Any) -> tuple[CampaignConfig, DonationStats | None]:
        async with self._mutation_lock:
            config = await run_in_threadpool(self.config_service.update, payload)
            stats = await self._stats_after_write("updating config")
            await self.broadcaster.emit_config_updated(config, stats)
        return config, stats

    async def _stats_after_write(self, action: str) -> DonationStats | None:
        try:
            return await run_in_threadpool(self.ledger.get_stats)
        except StorageError:
            logger.exception(f"Stats unavailable after {action}, publishing without stats")
            return None

    # ---------- reads ----------

    async def list_donations(self) -> tuple[list[Donation], DonationStats]:
        donations = await run_in_threadpool(self.ledger.get_all)
        stats = await run_in_threadpool(self.ledger.get_stats)
        return donations, stats

    async def get_donation(self, donation_id: int) -> Donation:
        return await run_in_threadpool(self.ledger.get_by_id, donation_id)

    async def get_stats(self) -> DonationStats:
        return await run_in_threadpool(self.ledger.get_stats)

    async def get_config(self) -> CampaignConfig:
        return await run_in_threadpool(self.config_service.get)

    async def get_premium_words(self) -> list[PremiumWordAvailability]:
        return await run_in_threadpool(self.ledger.get_premium_words)

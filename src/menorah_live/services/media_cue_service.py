import logging

from menorah_live.core.errors import ValidationError
from menorah_live.services.broadcast_service import BroadcastCoordinator

logger = logging.getLogger(__name__)


class MediaCueService:
    """
    Celebration overlays pushed to the displays.

    Keeps the GIF to audio associations in memory for the lifetime of the
    application; nothing here touches the ledger.
    """

    def __init__(self, broadcaster: BroadcastCoordinator):
        self.broadcaster = broadcaster
        self._audio_by_gif: dict[str, str] = {}

    def associate(self, gif_filename: str, audio_url: str | None) -> None:
        if not gif_filename or not isinstance(gif_filename, str):
            raise ValidationError("gifFilename is required")

        if audio_url:
            self._audio_by_gif[gif_filename] = audio_url
        else:
            self._audio_by_gif.pop(gif_filename, None)

    def audio_for(self, gif_url: str) -> str | None:
        filename = gif_url.rsplit("/", 1)[-1]
        return self._audio_by_gif.get(filename) if filename else None

    async def trigger(self, gif_url: str, audio_url: str | None = None) -> str | None:
        if not gif_url or not isinstance(gif_url, str):
            raise ValidationError("gifUrl is required")

        final_audio_url = audio_url or self.audio_for(gif_url)
        await self.broadcaster.emit_gif_trigger(gif_url, final_audio_url)
        logger.info(f"Triggered overlay {gif_url}")
        return final_audio_url

import json
import logging
from typing import Any
from fastapi import APIRouter, Body, Depends, WebSocket, WebSocketDisconnect

from menorah_live.api.schemas import AssociateAudioRequest, HealthResponse, TriggerRequest
from menorah_live.api.websockets import SubscriberHub
from menorah_live.core.dependencies import (
    get_campaign_service,
    get_media_cue_service,
    get_subscriber_hub,
)
from menorah_live.models.premium_words import PREMIUM_TIERS
from menorah_live.models.stats import stats_to_public
from menorah_live.services.campaign_service import CampaignService
from menorah_live.services.media_cue_service import MediaCueService

router = APIRouter(prefix="/api")
ws_router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()


# ---------- donations ----------

@router.get("/donations/premium-words")
async def get_premium_words(campaign: CampaignService = Depends(get_campaign_service)):
    words = await campaign.get_premium_words()
    return {
        "words": [word.model_dump(mode="json", by_alias=True, exclude_none=True) for word in words],
        "tiers": [tier.model_dump(by_alias=True) for tier in PREMIUM_TIERS],
    }


@router.get("/donations")
async def list_donations(campaign: CampaignService = Depends(get_campaign_service)):
    donations, stats = await campaign.list_donations()
    return {
        "donations": [donation.to_public() for donation in donations],
        "stats": stats.to_public(),
    }


@router.get("/donations/{donation_id}")
async def get_donation(donation_id: int, campaign: CampaignService = Depends(get_campaign_service)):
    donation = await campaign.get_donation(donation_id)
    return donation.to_public()


@router.post("/donations", status_code=201)
async def create_donation(
    payload: Any = Body(...),
    campaign: CampaignService = Depends(get_campaign_service)
):
    donation, stats = await campaign.create_donation(payload)
    return {"donation": donation.to_public(), "stats": stats_to_public(stats)}


@router.put("/donations/{donation_id}")
async def update_donation(
    donation_id: int,
    payload: Any = Body(...),
    campaign: CampaignService = Depends(get_campaign_service)
):
    donation, stats = await campaign.update_donation(donation_id, payload)
    return {"donation": donation.to_public(), "stats": stats_to_public(stats)}


@router.delete("/donations/{donation_id}")
async def delete_donation(donation_id: int, campaign: CampaignService = Depends(get_campaign_service)):
    donation, stats = await campaign.delete_donation(donation_id)
    return {"donation": donation.to_public(), "stats": stats_to_public(stats)}


# ---------- stats & config ----------

@router.get("/stats")
async def get_stats(campaign: CampaignService = Depends(get_campaign_service)):
    stats = await campaign.get_stats()
    return stats.to_public()


@router.get("/config")
async def get_config(campaign: CampaignService = Depends(get_campaign_service)):
    config = await campaign.get_config()
    return config.to_public()


@router.put("/config")
async def update_config(
    payload: Any = Body(...),
    campaign: CampaignService = Depends(get_campaign_service)
):
    config, _ = await campaign.update_config(payload)
    return config.to_public()


# ---------- celebration overlays ----------

@router.post("/gifs/associate-audio")
def associate_audio(body: AssociateAudioRequest, media_cues: MediaCueService = Depends(get_media_cue_service)):
    media_cues.associate(body.gif_filename, body.audio_url)
    return {"success": True, "gifFilename": body.gif_filename, "audioUrl": body.audio_url}


@router.post("/gifs/trigger")
async def trigger_gif(body: TriggerRequest, media_cues: MediaCueService = Depends(get_media_cue_service)):
    audio_url = await media_cues.trigger(body.gif_url, body.audio_url)
    return {"success": True, "message": "GIF triggered on all displays", "audioUrl": audio_url}


# ---------- live updates ----------

@ws_router.websocket("/ws")
async def display_stream(websocket: WebSocket, hub: SubscriberHub = Depends(get_subscriber_hub)):
    """
    Push channel for display clients.

    Nothing is replayed on connect: clients load /api/donations and /api/config
    first, then apply the events they receive here.
    """
    await websocket.accept()
    await hub.subscribe(websocket)

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                logger.debug(f"Ignoring non-JSON message from display client: {text[:80]}")
                continue

            if isinstance(message, dict) and message.get("event") == "join":
                hub.join(websocket, message.get("room"))
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unsubscribe(websocket)

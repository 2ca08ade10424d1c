import boto3
from dataclasses import dataclass
from functools import lru_cache
from fastapi import Request, WebSocket

from menorah_live.api.websockets import SubscriberHub
from menorah_live.core.config import Settings
from menorah_live.data_access.dynamodb import DynamoDataAccess
from menorah_live.services.broadcast_service import BroadcastCoordinator
from menorah_live.services.campaign_service import CampaignService
from menorah_live.services.config_service import ConfigService
from menorah_live.services.ledger_service import LedgerService
from menorah_live.services.media_cue_service import MediaCueService


@dataclass
class Services:
    data_access: DynamoDataAccess
    config_service: ConfigService
    ledger: LedgerService
    hub: SubscriberHub
    broadcaster: BroadcastCoordinator
    campaign: CampaignService
    media_cues: MediaCueService


@lru_cache()
def get_boto_session(region_name: str, profile_name: str | None = None) -> boto3.Session:
    return boto3.Session(
        region_name=region_name,
        profile_name=profile_name
    )


def get_dynamo_table(settings: Settings):
    session = get_boto_session(settings.AWS_REGION, settings.AWS_PROFILE)
    dynamo_resource = session.resource(
        "dynamodb",
        endpoint_url=settings.DYNAMODB_ENDPOINT_URL
    )
    return dynamo_resource.Table(settings.DYNAMODB_TABLE_NAME)


def build_services(settings: Settings, table=None) -> Services:
    """Wires one application's services. ``table`` overrides the configured DynamoDB table."""
    data_access = DynamoDataAccess(table=table if table is not None else get_dynamo_table(settings))
    config_service = ConfigService(data_access)
    ledger = LedgerService(
        data_access=data_access,
        config_service=config_service,
        premium_word_policy=settings.PREMIUM_WORD_POLICY
    )
    hub = SubscriberHub()
    broadcaster = BroadcastCoordinator(hub)

    return Services(
        data_access=data_access,
        config_service=config_service,
        ledger=ledger,
        hub=hub,
        broadcaster=broadcaster,
        campaign=CampaignService(ledger, config_service, broadcaster),
        media_cues=MediaCueService(broadcaster),
    )


def get_campaign_service(request: Request) -> CampaignService:
    return request.app.state.services.campaign


def get_media_cue_service(request: Request) -> MediaCueService:
    return request.app.state.services.media_cues


def get_subscriber_hub(websocket: WebSocket) -> SubscriberHub:
    return websocket.app.state.services.hub

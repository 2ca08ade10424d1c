import logging
from typing import Any
from pydantic import ValidationError as PydanticValidationError

from menorah_live.core.clock import now_utc
from menorah_live.core.errors import ValidationError, from_pydantic
from menorah_live.data_access.dynamodb import DynamoDataAccess
from menorah_live.models.campaign import CampaignConfig, ConfigUpdate

logger = logging.getLogger(__name__)


class ConfigService:
    def __init__(self, data_access: DynamoDataAccess):
        self.data_access = data_access

    def ensure_initialized(self) -> CampaignConfig:
        created = self.data_access.save_config(CampaignConfig(), now_utc(), create_only=True)
        if created:
            logger.info("Created default campaign configuration")
        return self.get()

    def get(self) -> CampaignConfig:
        config = self.data_access.get_config()
        if config is None:
            logger.warning("Campaign configuration row missing, using defaults")
            return CampaignConfig()
        return config

    def update(self, payload: Any) -> CampaignConfig:
        """
        Merges ``payload`` into the stored configuration.

        goalAmount, presetAmounts and menorahSegments are validated together and any
        failure rejects the whole update. displaySettings is merged key by key over
        the previous settings and invalid keys are dropped.
        """
        if not isinstance(payload, dict):
            raise ValidationError("config update must be an object")

        try:
            changes = ConfigUpdate.model_validate(payload)
        except PydanticValidationError as e:
            raise from_pydantic(e) from e

        current = self.get()
        provided = changes.model_fields_set
        updates = {
            field: getattr(changes, field)
            for field in ("goal_amount", "preset_amounts", "menorah_segments")
            if field in provided
        }
        if "display_settings" in provided:
            updates["display_settings"] = current.display_settings.merged(changes.display_settings)

        config = current.model_copy(update=updates)
        self.data_access.save_config(config, now_utc())
        logger.info(f"Campaign configuration updated: {sorted(updates)}")
        return config

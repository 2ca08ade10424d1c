import json
import logging
from datetime import datetime
from typing import Any
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from menorah_live.core.errors import NotFoundError, StorageError
from menorah_live.models.campaign import CampaignConfig
from menorah_live.models.donation import Donation

logger = logging.getLogger(__name__)

DONATION_PK = "DONATION"
DONATION_PREFIX = "DONATION#"
COUNTER_PK = "COUNTER"
DONATION_ID_SK = "DONATION_ID"
CONFIG_PK = "CONFIG"
CONFIG_SK = "SINGLETON"

# Attribute names of a donation item, keyed by Donation field
DONATION_ATTRIBUTES = (
    "first_name",
    "last_name",
    "amount",
    "email",
    "phone",
    "reference",
    "premium_word_id",
    "created_at",
    "updated_at",
)

THROTTLING_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
}


def _is_throttled(exc: BaseException) -> bool:
    return isinstance(exc, ClientError) and exc.response["Error"]["Code"] in THROTTLING_CODES


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def donation_sort_key(donation_id: int) -> str:
    # Zero padding keeps lexical order equal to numeric order
    return f"{DONATION_PREFIX}{donation_id:012d}"


read_retry = retry(
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    stop=stop_after_attempt(3),
    retry=retry_if_exception(_is_throttled),
    reraise=True,
)


class DynamoDataAccess:
    def __init__(self, table):
        self.table = table

    # ---------- table lifecycle ----------

    def create_table(self) -> None:
        """Creates the single table used by the campaign. Meant for local development and tests."""
        client = self.table.meta.client
        try:
            client.create_table(
                TableName=self.table.name,
                KeySchema=[
                    {"AttributeName": "PK", "KeyType": "HASH"},
                    {"AttributeName": "SK", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "PK", "AttributeType": "S"},
                    {"AttributeName": "SK", "AttributeType": "S"},
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            client.get_waiter("table_exists").wait(TableName=self.table.name)
            logger.info(f"Created DynamoDB table {self.table.name}")
        except ClientError as e:
            if _error_code(e) == "ResourceInUseException":
                logger.info(f"DynamoDB table {self.table.name} already exists")
            else:
                raise StorageError(f"Could not create table: {e}") from e

    # ---------- donations ----------

    def next_donation_id(self) -> int:
        try:
            response = self.table.update_item(
                Key={"PK": COUNTER_PK, "SK": DONATION_ID_SK},
                UpdateExpression="SET #value = if_not_exists(#value, :start) + :inc",
                ExpressionAttributeNames={"#value": "value"},
                ExpressionAttributeValues={":start": 0, ":inc": 1},
                ReturnValues="UPDATED_NEW",
            )
            return int(response["Attributes"]["value"])
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error allocating donation id: {e}")
            raise StorageError("Could not allocate donation id") from e

    def insert_donation(self, donation: Donation) -> Donation:
        item = {
            "PK": DONATION_PK,
            "SK": donation_sort_key(donation.id),
            "donation_id": donation.id,
            **self._donation_attributes(donation),
        }

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(PK)",
            )
            return donation
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error inserting donation {donation.id}: {e}")
            raise StorageError("Could not store donation") from e

    def get_donation(self, donation_id: int) -> Donation | None:
        try:
            item = self._get_item(
                Key={"PK": DONATION_PK, "SK": donation_sort_key(donation_id)},
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading donation {donation_id}: {e}")
            raise StorageError("Could not read donation") from e

        return self._item_to_donation(item) if item else None

    def list_donations(self) -> list[Donation]:
        """All donations, newest first."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("PK").eq(DONATION_PK) & Key("SK").begins_with(DONATION_PREFIX),
                ScanIndexForward=False,
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error listing donations: {e}")
            raise StorageError("Could not list donations") from e

        return [self._item_to_donation(item) for item in items]

    def update_donation(self, donation_id: int, changes: dict[str, Any]) -> Donation:
        """Applies ``changes`` to one donation item; a None value removes the attribute."""
        set_parts, remove_parts = [], []
        names, values = {}, {}
        for index, (field, value) in enumerate(changes.items()):
            names[f"#f{index}"] = field
            if value is None:
                remove_parts.append(f"#f{index}")
            else:
                values[f":v{index}"] = self._to_attribute(value)
                set_parts.append(f"#f{index} = :v{index}")

        expression = []
        if set_parts:
            expression.append("SET " + ", ".join(set_parts))
        if remove_parts:
            expression.append("REMOVE " + ", ".join(remove_parts))

        kwargs = {
            "Key": {"PK": DONATION_PK, "SK": donation_sort_key(donation_id)},
            "UpdateExpression": " ".join(expression),
            "ConditionExpression": "attribute_exists(PK)",
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values

        try:
            response = self.table.update_item(**kwargs)
            return self._item_to_donation(response["Attributes"])
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise NotFoundError(f"Donation {donation_id} not found") from e
            logger.error(f"Error updating donation {donation_id}: {e}")
            raise StorageError("Could not update donation") from e
        except BotoCoreError as e:
            logger.error(f"Error updating donation {donation_id}: {e}")
            raise StorageError("Could not update donation") from e

    def delete_donation(self, donation_id: int) -> Donation:
        try:
            response = self.table.delete_item(
                Key={"PK": DONATION_PK, "SK": donation_sort_key(donation_id)},
                ConditionExpression="attribute_exists(PK)",
                ReturnValues="ALL_OLD",
            )
            return self._item_to_donation(response["Attributes"])
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise NotFoundError(f"Donation {donation_id} not found") from e
            logger.error(f"Error deleting donation {donation_id}: {e}")
            raise StorageError("Could not delete donation") from e
        except BotoCoreError as e:
            logger.error(f"Error deleting donation {donation_id}: {e}")
            raise StorageError("Could not delete donation") from e

    def get_totals(self) -> tuple[int, int]:
        """Returns (total amount, donation count) over every stored donation."""
        try:
            items = self._query_all(
                KeyConditionExpression=Key("PK").eq(DONATION_PK) & Key("SK").begins_with(DONATION_PREFIX),
                ProjectionExpression="amount",
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error computing donation totals: {e}")
            raise StorageError("Could not compute totals") from e

        return sum(int(item["amount"]) for item in items), len(items)

    # ---------- campaign config ----------

    def get_config(self) -> CampaignConfig | None:
        try:
            item = self._get_item(Key={"PK": CONFIG_PK, "SK": CONFIG_SK}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading campaign config: {e}")
            raise StorageError("Could not read config") from e

        if not item:
            return None

        return CampaignConfig(
            goal_amount=int(item["goal_amount"]),
            preset_amounts=json.loads(item["preset_amounts"]),
            menorah_segments=json.loads(item["menorah_segments"]),
            display_settings=json.loads(item.get("display_settings", "{}")),
        )

    def save_config(self, config: CampaignConfig, updated_at: datetime, create_only: bool = False) -> bool:
        """
        Writes the singleton config row.

        With ``create_only`` an existing row is left untouched and False is returned.
        """
        item = {
            "PK": CONFIG_PK,
            "SK": CONFIG_SK,
            "goal_amount": config.goal_amount,
            "preset_amounts": json.dumps(config.preset_amounts),
            "menorah_segments": json.dumps(
                [segment.model_dump(by_alias=True) for segment in config.menorah_segments]
            ),
            "display_settings": config.display_settings.model_dump_json(by_alias=True),
            "updated_at": updated_at.isoformat(),
        }
        kwargs = {"Item": item}
        if create_only:
            kwargs["ConditionExpression"] = "attribute_not_exists(PK)"

        try:
            self.table.put_item(**kwargs)
            return True
        except ClientError as e:
            if create_only and _error_code(e) == "ConditionalCheckFailedException":
                return False
            logger.error(f"Error saving campaign config: {e}")
            raise StorageError("Could not save config") from e
        except BotoCoreError as e:
            logger.error(f"Error saving campaign config: {e}")
            raise StorageError("Could not save config") from e

    # ---------- helpers ----------

    @read_retry
    def _get_item(self, **kwargs) -> dict | None:
        response = self.table.get_item(**kwargs)
        return response.get("Item")

    @read_retry
    def _query_all(self, **kwargs) -> list[dict]:
        items = []
        params = dict(kwargs)
        while True:
            response = self.table.query(**params)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            params["ExclusiveStartKey"] = last_key

    @staticmethod
    def _to_attribute(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def _donation_attributes(self, donation: Donation) -> dict:
        data = donation.model_dump(include=set(DONATION_ATTRIBUTES))
        return {
            field: self._to_attribute(value)
            for field, value in data.items()
            if value is not None
        }

    @staticmethod
    def _item_to_donation(item: dict) -> Donation:
        return Donation(
            id=int(item["donation_id"]),
            first_name=item["first_name"],
            last_name=item["last_name"],
            amount=int(item["amount"]),
            email=item.get("email"),
            phone=item.get("phone"),
            reference=item.get("reference"),
            premium_word_id=item.get("premium_word_id"),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )

from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from menorah_live.core.errors import NotFoundError, StorageError
from menorah_live.data_access.dynamodb import DynamoDataAccess, donation_sort_key
from menorah_live.models.donation import Donation

NOW = datetime(2026, 12, 14, 18, 30, tzinfo=timezone.utc)


def make_donation(donation_id=1, **overrides):
    fields = dict(
        id=donation_id,
        first_name="Dana",
        last_name="Levi",
        amount=1800,
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return Donation(**fields)


@pytest.fixture
def stubbed():
    table = boto3.resource("dynamodb", region_name="us-east-1").Table("stubbed")
    with Stubber(table.meta.client) as stubber:
        yield DynamoDataAccess(table), stubber


def test_sort_keys_order_numerically():
    assert donation_sort_key(9) < donation_sort_key(10) < donation_sort_key(100)


def test_insert_and_read_back(data_access):
    donation = make_donation(reference="note", premium_word_id="emuna")
    data_access.insert_donation(donation)
    assert data_access.get_donation(1) == donation


def test_none_fields_are_not_stored(data_access, table):
    data_access.insert_donation(make_donation())
    item = table.get_item(Key={"PK": "DONATION", "SK": donation_sort_key(1)})["Item"]
    assert "email" not in item
    assert "reference" not in item


def test_ids_increase(data_access):
    assert [data_access.next_donation_id() for _ in range(3)] == [1, 2, 3]


def test_totals_across_many_items(data_access):
    for donation_id in range(1, 26):
        data_access.insert_donation(make_donation(donation_id, amount=donation_id))
    assert data_access.get_totals() == (sum(range(1, 26)), 25)


def test_update_and_delete_missing_raise_not_found(data_access):
    with pytest.raises(NotFoundError):
        data_access.update_donation(7, {"reference": "x"})
    with pytest.raises(NotFoundError):
        data_access.delete_donation(7)


def test_update_removes_none_values(data_access):
    data_access.insert_donation(make_donation(reference="note"))
    updated = data_access.update_donation(1, {"reference": None, "amount": 3600})
    assert updated.reference is None
    assert updated.amount == 3600


def test_write_failure_raises_storage_error(stubbed):
    data_access, stubber = stubbed
    stubber.add_client_error("put_item", service_error_code="InternalServerError", http_status_code=500)

    with pytest.raises(StorageError):
        data_access.insert_donation(make_donation())


def test_throttled_read_is_retried(stubbed):
    data_access, stubber = stubbed
    stubber.add_client_error("get_item", service_error_code="ProvisionedThroughputExceededException")
    stubber.add_response("get_item", {})

    assert data_access.get_donation(1) is None
    stubber.assert_no_pending_responses()


def test_persistent_read_failure_raises_storage_error(stubbed):
    data_access, stubber = stubbed
    for _ in range(3):
        stubber.add_client_error("query", service_error_code="ThrottlingException")

    with pytest.raises(StorageError):
        data_access.list_donations()

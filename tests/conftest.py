import os

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from menorah_live.api.main import create_app
from menorah_live.core.config import Settings
from menorah_live.data_access.dynamodb import DynamoDataAccess
from menorah_live.services.config_service import ConfigService
from menorah_live.services.ledger_service import LedgerService

TABLE_NAME = "menorah-live-test"
REGION = "us-east-1"


@pytest.fixture(scope="session", autouse=True)
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def table(aws_credentials):
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name=REGION)
        table = dynamodb.Table(TABLE_NAME)
        DynamoDataAccess(table).create_table()
        yield table


@pytest.fixture
def data_access(table):
    return DynamoDataAccess(table)


@pytest.fixture
def config_service(data_access):
    service = ConfigService(data_access)
    service.ensure_initialized()
    return service


@pytest.fixture
def ledger(data_access, config_service):
    return LedgerService(data_access, config_service)


@pytest.fixture
def advisory_ledger(data_access, config_service):
    return LedgerService(data_access, config_service, premium_word_policy="advisory")


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        AWS_REGION=REGION,
        DYNAMODB_TABLE_NAME=TABLE_NAME,
        LOG_LEVEL=os.getenv("TEST_LOG_LEVEL", "WARNING"),
    )


@pytest.fixture
def client(settings, table):
    app = create_app(settings, table=table)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def donation_payload():
    def build(**overrides):
        payload = {"firstName": "Dana", "lastName": "Levi", "amount": 18000}
        payload.update(overrides)
        return payload

    return build

from __future__ import annotations

from types import SimpleNamespace

import boto3
import pytest
from botocore.stub import Stubber

from tests.utils.providers import FakeProvider


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "aws-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws-credentials"))
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)
    for name in (
        "CRONSCOPE_AWS_REGION",
        "CRONSCOPE_AWS_PROFILE",
        "CRONSCOPE_DESIRED_STATUS",
        "CRONSCOPE_MAX_CONCURRENCY",
        "CRONSCOPE_LOOKBACK_DAYS",
        "CRONSCOPE_RUN_TIMEOUT",
        "CRONSCOPE_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def make_client(service: str):
    session = boto3.session.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="us-east-1",
    )
    return session.client(service)


@pytest.fixture
def events_stub():
    client = make_client("events")
    with Stubber(client) as stubber:
        yield SimpleNamespace(client=client, stubber=stubber)


@pytest.fixture
def cloudwatch_stub():
    client = make_client("cloudwatch")
    with Stubber(client) as stubber:
        yield SimpleNamespace(client=client, stubber=stubber)


@pytest.fixture
def ecs_stub():
    client = make_client("ecs")
    with Stubber(client) as stubber:
        yield SimpleNamespace(client=client, stubber=stubber)


@pytest.fixture
def fake_provider_factory():
    return FakeProvider

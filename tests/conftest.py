"""Shared pytest fixtures for connector profile composition tests."""

import pytest

from ol_appflow.plan.config import RedshiftConnectorProfileConfig
from ol_appflow.plan.models import AwsEnvironment
from ol_appflow.plan.permissions import FlowPermissionsAggregator

ACCOUNT_ID = "123456789012"


@pytest.fixture
def environment() -> AwsEnvironment:
    return AwsEnvironment(partition="aws", region="us-east-1", account_id=ACCOUNT_ID)


@pytest.fixture
def permissions(environment) -> FlowPermissionsAggregator:
    return FlowPermissionsAggregator(environment)


@pytest.fixture
def profile_data() -> dict:
    """Input with every optional role left out."""
    return {
        "name": "warehouse",
        "intermediate_location": {"bucket_name": "ol-staging", "prefix": "exports"},
        "cluster": {"cluster_identifier": "c1"},
        "database_name": "db1",
        "basic_auth": {"username": "bob", "password": "hunter2"},  # noqa: S106
    }


@pytest.fixture
def profile_config(profile_data) -> RedshiftConnectorProfileConfig:
    return RedshiftConnectorProfileConfig.from_dict(profile_data)

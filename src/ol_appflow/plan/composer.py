"""Build the property and credential payloads of a Redshift connector profile.

Role identities are resolved elsewhere and only placed into the payload here.
"""

from ol_appflow.plan.config import RedshiftConnectorProfileConfig
from ol_appflow.plan.models import (
    RedshiftConnectorProfileCredentials,
    RedshiftConnectorProfileProperties,
)


def compose_properties(
    config: RedshiftConnectorProfileConfig,
    storage_access_role_arn: str,
    data_api_role_arn: str,
) -> RedshiftConnectorProfileProperties:
    return RedshiftConnectorProfileProperties(
        bucket_name=config.intermediate_location.bucket_name,
        bucket_prefix=config.intermediate_location.prefix,
        role_arn=storage_access_role_arn,
        cluster_identifier=config.cluster.cluster_identifier,
        database_name=config.database_name,
        data_api_role_arn=data_api_role_arn,
    )


def compose_credentials(
    config: RedshiftConnectorProfileConfig,
) -> RedshiftConnectorProfileCredentials:
    # Always present, even when both fields are empty
    return RedshiftConnectorProfileCredentials(
        username=config.basic_auth.username,
        password=config.basic_auth.password,
    )

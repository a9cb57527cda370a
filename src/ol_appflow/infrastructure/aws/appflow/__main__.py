"""
Pulumi project for AppFlow connector profiles that load data into Redshift
"""

from typing import Any

from pulumi import Config, export

from ol_appflow.components.aws.redshift_connector_profile import (
    OLFlowBucketPolicies,
    OLRedshiftConnectorProfile,
    OLRedshiftConnectorProfileConfig,
)
from ol_appflow.lib.aws.iam_helper import lint_iam_policy
from ol_appflow.lib.ol_types import AWSBase
from ol_appflow.lib.pulumi_helper import aws_environment, parse_stack
from ol_appflow.plan.config import RedshiftConnectorProfileConfig
from ol_appflow.plan.models import AwsEnvironment
from ol_appflow.plan.permissions import FlowPermissionsAggregator

stack_info = parse_stack()
appflow_config = Config("appflow_redshift")
aws_config = AWSBase(
    tags={
        "OU": "data",
        "Environment": f"data-{stack_info.env_suffix}",
        "Owner": "platform-engineering",
        "Application": "appflow",
    },
)
environment = AwsEnvironment(**aws_environment())

# The Data API statement actions do not support resource level permissions
parliament_config: dict[str, Any] = {
    "RESOURCE_STAR": {"ignore_locations": [{"actions": ["redshift-data"]}]},
    "RESOURCE_EFFECTIVELY_STAR": {"ignore_locations": [{"actions": ["redshift-data"]}]},
}

permissions = FlowPermissionsAggregator(environment)

connector_profiles = []
for profile_entry in appflow_config.require_object("profiles"):
    profile = RedshiftConnectorProfileConfig.from_dict(profile_entry)
    password = appflow_config.get_secret(f"{profile.name}_password")
    connector_profile = OLRedshiftConnectorProfile(
        OLRedshiftConnectorProfileConfig(
            profile=profile.model_copy(
                update={"name": stack_info.resource_name(profile.name)}
            ),
            password=password,
            environment=environment,
            tags=aws_config.tags,
        ),
        permissions=permissions,
    )
    for policy in connector_profile.plan.policies:
        lint_iam_policy(policy.document(), parliament_config=parliament_config)
    connector_profiles.append(connector_profile)

bucket_policies = OLFlowBucketPolicies(
    stack_info.resource_name("appflow-redshift"), permissions=permissions
)

export(
    "appflow_redshift",
    {
        "connector_profiles": {
            profile.plan.profile.profile_name: profile.connector_profile.arn
            for profile in connector_profiles
        },
        "buckets": list(bucket_policies.bucket_policies),
    },
)

"""Pulumi component resources for AppFlow connector profiles targeting Redshift.

This module turns a composed ``ConnectorProfilePlan`` into AWS resources:

- IAM role for Redshift to read the intermediate bucket, attached to the cluster
- IAM role and policy for AppFlow to use the Redshift Data API
- The AppFlow connector profile itself

Resources are created in the plan's provisioning order and each one receives the
resources of its planned dependencies as ``depends_on``.
"""

import json
from typing import Any

import pulumi
from pulumi import ComponentResource, Output, Resource, ResourceOptions
from pulumi_aws import appflow, iam, s3
from pydantic import ConfigDict, Field, ValidationError

from ol_appflow.lib.ol_types import AWSBase
from ol_appflow.lib.pulumi_helper import aws_environment
from ol_appflow.plan.config import RedshiftConnectorProfileConfig, configuration_error
from ol_appflow.plan.models import (
    AccessRole,
    AwsEnvironment,
    ConnectorProfile,
    ManagedPolicy,
    RoleAttachmentAction,
    bucket_node,
    cluster_node,
)
from ol_appflow.plan.permissions import FlowPermissionsAggregator
from ol_appflow.plan.profile import plan_redshift_connector_profile
from ol_appflow.providers.redshift import ClusterIamRoleAttachment, attachment_props


class OLRedshiftConnectorProfileConfig(AWSBase):
    """Configuration for an AppFlow connector profile that writes to Redshift."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    profile: RedshiftConnectorProfileConfig
    environment: AwsEnvironment | None = Field(
        default=None,
        description=(
            "Partition, region and account to scope ARNs to. Looked up from the AWS "
            "provider when omitted."
        ),
    )
    cluster_resource: Resource | None = Field(
        default=None,
        description="The Pulumi managed Redshift cluster, if it lives in this stack.",
    )
    bucket_resource: Resource | None = Field(
        default=None,
        description=(
            "The Pulumi managed intermediate bucket, if it lives in this stack."
        ),
    )
    password: Output[str] | None = Field(
        default=None,
        description=(
            "Secret password for the Redshift user. Takes precedence over the "
            "password in the profile's basic auth."
        ),
    )

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise configuration_error(exc) from exc


class OLRedshiftConnectorProfile(ComponentResource):
    def __init__(
        self,
        profile_config: OLRedshiftConnectorProfileConfig,
        permissions: FlowPermissionsAggregator,
        opts: ResourceOptions | None = None,
    ):
        """Compose and create a Redshift connector profile with its IAM plumbing.

        :param profile_config: Configuration object for customizing the component
        :type profile_config: OLRedshiftConnectorProfileConfig

        :param permissions: Aggregator collecting the bucket grants AppFlow needs. It
            must still be open.
        :type permissions: FlowPermissionsAggregator

        :param opts: Pulumi resource options
        :type opts: ResourceOptions

        :rtype: OLRedshiftConnectorProfile
        """
        profile = profile_config.profile
        super().__init__(
            "ol:infrastructure:aws:RedshiftConnectorProfile", profile.name, None, opts
        )
        component_opts = ResourceOptions(parent=self).merge(opts)

        self.environment = profile_config.environment or AwsEnvironment(
            **aws_environment()
        )
        self.plan = plan_redshift_connector_profile(
            profile, self.environment, permissions
        )
        self.profile_config = profile_config

        self.provisioned: dict[str, list[Resource]] = {}
        external = {
            cluster_node(profile.cluster): profile_config.cluster_resource,
            bucket_node(profile.intermediate_location): profile_config.bucket_resource,
        }
        self.roles: dict[str, iam.Role] = {}
        self.attachments: list[ClusterIamRoleAttachment] = []

        for node in self.plan.provisioning_order():
            entity = self.plan.entity(node)
            if entity is None:
                if external.get(node) is not None:
                    self.provisioned[node] = [external[node]]
                else:
                    pulumi.log.debug(f"{node} is managed outside of this stack")
                continue
            node_opts = component_opts.merge(
                ResourceOptions(
                    depends_on=[
                        resource
                        for dependency in self.plan.graph.dependencies_of(node)
                        for resource in self.provisioned.get(dependency, [])
                    ]
                )
            )
            if isinstance(entity, AccessRole):
                self.provisioned[node] = self._create_role(entity, node_opts)
            elif isinstance(entity, ManagedPolicy):
                self.provisioned[node] = self._create_policy(entity, node_opts)
            elif isinstance(entity, RoleAttachmentAction):
                attachment = ClusterIamRoleAttachment(
                    entity.logical_name,
                    attachment_props(entity, self.environment.region),
                    opts=node_opts,
                )
                self.attachments.append(attachment)
                self.provisioned[node] = [attachment]
            else:
                self.connector_profile = self._create_profile(entity, node_opts)
                self.provisioned[node] = [self.connector_profile]

        self.register_outputs(
            {
                "connector_profile_arn": self.connector_profile.arn,
                "storage_access_role_arn": self.plan.storage_access_role_arn,
                "data_api_role_arn": self.plan.data_api_role_arn,
                "role_attachment_policies": [
                    action.authorization_policy() for action in self.plan.attachments
                ],
            }
        )

    def _create_role(self, role: AccessRole, opts: ResourceOptions) -> list[Resource]:
        pulumi.log.debug(f"creating {role.kind} role {role.role_name}")
        iam_role = iam.Role(
            role.logical_name,
            name=role.role_name,
            assume_role_policy=json.dumps(role.trust_policy()),
            tags=self.profile_config.merged_tags({"Name": role.role_name}),
            opts=opts,
        )
        self.roles[role.logical_name] = iam_role
        created: list[Resource] = [iam_role]
        inline_policy = role.inline_policy()
        if inline_policy:
            created.append(
                iam.RolePolicy(
                    f"{role.logical_name}-inline-policy",
                    role=iam_role.id,
                    policy=json.dumps(inline_policy),
                    opts=opts,
                )
            )
        return created

    def _create_policy(
        self, policy: ManagedPolicy, opts: ResourceOptions
    ) -> list[Resource]:
        iam_policy = iam.Policy(
            policy.logical_name,
            name=policy.policy_name,
            policy=json.dumps(policy.document()),
            tags=self.profile_config.merged_tags({"Name": policy.policy_name}),
            opts=opts,
        )
        attachment = iam.RolePolicyAttachment(
            f"{policy.logical_name}-attachment",
            role=self.roles[policy.role_logical_name].name,
            policy_arn=iam_policy.arn,
            opts=opts,
        )
        return [iam_policy, attachment]

    def _create_profile(
        self, profile: ConnectorProfile, opts: ResourceOptions
    ) -> appflow.ConnectorProfile:
        credentials = profile.connector_profile_credentials()["redshift"]
        password = credentials["password"]
        if self.profile_config.password is not None:
            password = self.profile_config.password
        elif password:
            password = Output.secret(password)
        return appflow.ConnectorProfile(
            profile.logical_name,
            name=profile.profile_name,
            connector_type=profile.connector_type,
            connection_mode=profile.connection_mode,
            kms_arn=profile.kms_arn,
            connector_profile_config=appflow.ConnectorProfileConnectorProfileConfigArgs(
                connector_profile_credentials=appflow.ConnectorProfileConnectorProfileConfigConnectorProfileCredentialsArgs(
                    redshift=appflow.ConnectorProfileConnectorProfileConfigConnectorProfileCredentialsRedshiftArgs(
                        username=credentials["username"],
                        password=password,
                    )
                ),
                connector_profile_properties=appflow.ConnectorProfileConnectorProfileConfigConnectorProfilePropertiesArgs(
                    redshift=appflow.ConnectorProfileConnectorProfileConfigConnectorProfilePropertiesRedshiftArgs(
                        **profile.properties.model_dump(exclude_none=True)
                    )
                ),
            ),
            opts=opts,
        )


class OLFlowBucketPolicies(ComponentResource):
    """Bucket policies granting AppFlow the access collected by an aggregator.

    Each bucket policy replaces whatever policy the bucket had before, so buckets
    listed here must not have their policy managed anywhere else.
    """

    def __init__(
        self,
        name: str,
        permissions: FlowPermissionsAggregator,
        bucket_resources: dict[str, Resource] | None = None,
        opts: ResourceOptions | None = None,
    ):
        super().__init__("ol:infrastructure:aws:FlowBucketPolicies", name, None, opts)
        component_opts = ResourceOptions(parent=self).merge(opts)
        bucket_resources = bucket_resources or {}

        self.bucket_policies: dict[str, s3.BucketPolicy] = {}
        for bucket_name, document in permissions.finalize().items():
            bucket_resource = bucket_resources.get(bucket_name)
            depends_on = [bucket_resource] if bucket_resource else []
            self.bucket_policies[bucket_name] = s3.BucketPolicy(
                f"{name}-{bucket_name}-appflow-bucket-policy",
                bucket=bucket_name,
                policy=json.dumps(document),
                opts=component_opts.merge(ResourceOptions(depends_on=depends_on)),
            )
        self.register_outputs(
            {
                "buckets": list(self.bucket_policies),
            }
        )

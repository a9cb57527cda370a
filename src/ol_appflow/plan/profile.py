"""Compose every entity of a Redshift connector profile and pin their order."""

from dataclasses import dataclass

import pulumi

from ol_appflow.lib.aws.iam_helper import appflow_connector_profile_arn
from ol_appflow.plan.composer import compose_credentials, compose_properties
from ol_appflow.plan.config import RedshiftConnectorProfileConfig
from ol_appflow.plan.graph import DependencyGraph
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
from ol_appflow.plan.role_source import Entity, Resolution
from ol_appflow.plan.roles import resolve_data_api_role, resolve_storage_access_role


@dataclass
class ConnectorProfilePlan:
    """Everything needed to provision one connector profile, in order."""

    profile: ConnectorProfile
    roles: list[AccessRole]
    policies: list[ManagedPolicy]
    attachments: list[RoleAttachmentAction]
    graph: DependencyGraph
    storage_access_role_arn: str
    data_api_role_arn: str

    def entities(self) -> list[ConnectorProfile | Entity]:
        return [*self.roles, *self.policies, *self.attachments, self.profile]

    def entity(self, node: str) -> ConnectorProfile | Entity | None:
        """Return the planned entity for ``node``, or None for external references."""
        for candidate in self.entities():
            if candidate.logical_name == node:
                return candidate
        return None

    def provisioning_order(self) -> list[str]:
        return self.graph.topological_order()


def _collect(
    resolutions: list[Resolution],
) -> tuple[list[AccessRole], list[ManagedPolicy], list[RoleAttachmentAction]]:
    roles, policies, attachments = [], [], []
    for resolution in resolutions:
        for created in resolution.entities:
            if isinstance(created, AccessRole):
                roles.append(created)
            elif isinstance(created, ManagedPolicy):
                policies.append(created)
            else:
                attachments.append(created)
    return roles, policies, attachments


def plan_redshift_connector_profile(
    config: RedshiftConnectorProfileConfig,
    environment: AwsEnvironment,
    permissions: FlowPermissionsAggregator,
) -> ConnectorProfilePlan:
    """Compose a Redshift connector profile plan.

    Roles that were not supplied in ``config`` are synthesized, the profile payloads
    are composed from the resolved role ARNs, and the provisioning order is recorded
    in the plan's dependency graph. The intermediate bucket is registered with
    ``permissions`` so that AppFlow is granted read/write access to it.

    :param config: The validated composition input.
    :param environment: Partition, region and account of the deployment.
    :param permissions: Stack wide aggregator of AppFlow bucket grants.

    :raises ConfigurationError: If a generated name would be invalid.

    :returns: The composed plan.
    """
    config.check_generated_names()

    storage_access = resolve_storage_access_role(
        config.name,
        config.cluster,
        config.intermediate_location,
        environment,
        override=config.bucket_access_role,
    )
    data_api = resolve_data_api_role(
        config.name,
        config.cluster,
        config.database_name,
        environment,
        username=config.basic_auth.username,
        override=config.data_api_role,
    )

    profile = ConnectorProfile(
        logical_name=config.name,
        profile_name=config.name,
        arn=appflow_connector_profile_arn(
            environment.partition,
            environment.region,
            environment.account_id,
            config.name,
        ),
        connection_mode=config.connection_mode,
        kms_arn=config.kms_key_arn,
        properties=compose_properties(
            config, storage_access.role_arn, data_api.role_arn
        ),
        credentials=compose_credentials(config),
    )

    graph = DependencyGraph()
    graph.add_node(profile.logical_name)
    graph.add_edge(profile.logical_name, cluster_node(config.cluster))
    storage_access.apply(graph, profile.logical_name)
    data_api.apply(graph, profile.logical_name)
    graph.add_edge(profile.logical_name, bucket_node(config.intermediate_location))

    permissions.grant_bucket_read_write(config.intermediate_location.bucket_name)

    roles, policies, attachments = _collect([storage_access, data_api])
    pulumi.log.info(
        f"Planned connector profile {profile.profile_name} with "
        f"{len(roles)} generated role(s) and {len(attachments)} cluster attachment(s)"
    )
    return ConnectorProfilePlan(
        profile=profile,
        roles=roles,
        policies=policies,
        attachments=attachments,
        graph=graph,
        storage_access_role_arn=storage_access.role_arn,
        data_api_role_arn=data_api.role_arn,
    )

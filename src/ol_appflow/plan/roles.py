"""Synthesis of the two IAM roles a Redshift connector profile needs.

The shapes follow the AppFlow documentation for Redshift destinations:
https://docs.aws.amazon.com/appflow/latest/userguide/security_iam_service-role-policies.html
"""

import pulumi
from pydantic import BaseModel, ConfigDict

from ol_appflow.lib.aws.iam_helper import (
    APPFLOW_SERVICE,
    REDSHIFT_DATA_SERVICE,
    REDSHIFT_SERVICE,
    iam_role_arn,
    redshift_cluster_arn,
    redshift_data_service_linked_role_arn,
    redshift_dbname_arn,
    redshift_dbuser_arn,
    s3_bucket_arn,
)
from ol_appflow.plan.models import (
    AccessRole,
    AwsEnvironment,
    ManagedPolicy,
    PolicyStatement,
    RoleAttachmentAction,
    RoleReference,
    StorageLocation,
    TargetCluster,
    cluster_node,
)
from ol_appflow.plan.role_source import Resolution, resolve, role_source

S3_READ_ACTIONS = ["s3:GetObject*", "s3:GetBucket*", "s3:List*"]
REDSHIFT_DATA_ACTIONS = [
    "redshift-data:ExecuteStatement",
    "redshift-data:GetStatementResult",
    "redshift-data:DescribeStatement",
]


def storage_access_role_name(profile_id: str) -> str:
    return f"{profile_id}-redshift-role"


def role_attachment_id(profile_id: str) -> str:
    return f"{profile_id}-redshift-role-attach"


def data_api_role_name(profile_id: str) -> str:
    return f"{profile_id}-appflow-data-api-role"


def data_api_policy_name(profile_id: str) -> str:
    return f"{profile_id}-appflow-data-api-role-policy"


class StorageAccessRoleParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_id: str
    cluster: TargetCluster
    location: StorageLocation
    environment: AwsEnvironment


class DataApiRoleParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_id: str
    cluster: TargetCluster
    database_name: str
    username: str | None = None
    environment: AwsEnvironment


def _synthesize_storage_access_role(params: StorageAccessRoleParams) -> Resolution:
    env = params.environment
    role_name = storage_access_role_name(params.profile_id)
    role_arn = iam_role_arn(env.partition, env.account_id, role_name)
    bucket_arn = s3_bucket_arn(env.partition, params.location.bucket_name)
    role = AccessRole(
        logical_name=role_name,
        role_name=role_name,
        arn=role_arn,
        kind="storage_access",
        trust_service=REDSHIFT_SERVICE,
        statements=[
            PolicyStatement(
                actions=S3_READ_ACTIONS,
                resources=[
                    bucket_arn,
                    f"{bucket_arn}/{params.location.object_key_pattern}",
                ],
            )
        ],
    )

    attachment_id = role_attachment_id(params.profile_id)
    attachment = RoleAttachmentAction(
        logical_name=attachment_id,
        physical_id=attachment_id,
        parameters={
            "ClusterIdentifier": params.cluster.cluster_identifier,
            "AddIamRoles": [role_arn],
        },
        authorization=[
            PolicyStatement(actions=["iam:PassRole"], resources=[role_arn]),
            PolicyStatement(
                actions=["redshift:ModifyClusterIamRoles"],
                resources=[
                    redshift_cluster_arn(
                        env.partition,
                        env.region,
                        env.account_id,
                        params.cluster.cluster_identifier,
                    )
                ],
            ),
        ],
    )
    pulumi.log.debug(
        f"synthesized storage access role {role_name} reading "
        f"s3://{params.location.bucket_name}/{params.location.object_key_pattern}"
    )
    return Resolution(
        role_arn=role_arn,
        node=role.logical_name,
        entities=(role, attachment),
        edges=(
            (attachment.logical_name, role.logical_name),
            (attachment.logical_name, cluster_node(params.cluster)),
        ),
        profile_dependencies=(attachment.logical_name, role.logical_name),
    )


def _synthesize_data_api_role(params: DataApiRoleParams) -> Resolution:
    env = params.environment
    cluster_name = params.cluster.cluster_identifier
    role_name = data_api_role_name(params.profile_id)
    role_arn = iam_role_arn(env.partition, env.account_id, role_name)
    role = AccessRole(
        logical_name=role_name,
        role_name=role_name,
        arn=role_arn,
        kind="data_api",
        trust_service=APPFLOW_SERVICE,
    )

    policy_name = data_api_policy_name(params.profile_id)
    policy = ManagedPolicy(
        logical_name=policy_name,
        policy_name=policy_name,
        role_logical_name=role.logical_name,
        statements=[
            # The Data API has no resource level permissions for statements
            PolicyStatement(
                sid="DataAPIPermissions",
                actions=REDSHIFT_DATA_ACTIONS,
                resources=["*"],
            ),
            PolicyStatement(
                sid="GetCredentialsForAPIUser",
                actions=["redshift:GetClusterCredentials"],
                resources=[
                    redshift_dbname_arn(
                        env.partition,
                        env.region,
                        env.account_id,
                        cluster_name,
                        params.database_name,
                    ),
                    redshift_dbuser_arn(
                        env.partition,
                        env.region,
                        env.account_id,
                        cluster_name,
                        params.username or "*",
                    ),
                ],
            ),
            PolicyStatement(
                sid="DenyCreateAPIUser",
                effect="Deny",
                actions=["redshift:CreateClusterUser"],
                resources=[
                    redshift_dbuser_arn(
                        env.partition, env.region, env.account_id, cluster_name, "*"
                    )
                ],
            ),
            PolicyStatement(
                sid="ServiceLinkedRole",
                actions=["iam:CreateServiceLinkedRole"],
                resources=[
                    redshift_data_service_linked_role_arn(
                        env.partition, env.account_id
                    )
                ],
                conditions={
                    "StringEquals": {"iam:AWSServiceName": REDSHIFT_DATA_SERVICE}
                },
            ),
        ],
    )
    if params.username is None:
        pulumi.log.debug(
            f"{role_name} may fetch credentials for any user of {cluster_name}"
        )
    return Resolution(
        role_arn=role_arn,
        node=role.logical_name,
        entities=(role, policy),
        edges=((policy.logical_name, role.logical_name),),
        profile_dependencies=(role.logical_name, policy.logical_name),
    )


def resolve_storage_access_role(
    profile_id: str,
    cluster: TargetCluster,
    location: StorageLocation,
    environment: AwsEnvironment,
    override: RoleReference | None = None,
) -> Resolution:
    """Resolve the role Redshift assumes to read from the intermediate location.

    :param profile_id: Identifier of the profile; all generated names derive from it.
    :param cluster: The cluster the role is attached to.
    :param location: Staging location the role may read.
    :param environment: Partition, region and account for generated ARNs.
    :param override: A caller supplied role. When given nothing is synthesized.

    :returns: The role together with the attachment action and ordering edges.
    """
    params = StorageAccessRoleParams(
        profile_id=profile_id,
        cluster=cluster,
        location=location,
        environment=environment,
    )
    return resolve(role_source(override, params), _synthesize_storage_access_role)


def resolve_data_api_role(
    profile_id: str,
    cluster: TargetCluster,
    database_name: str,
    environment: AwsEnvironment,
    username: str | None = None,
    override: RoleReference | None = None,
) -> Resolution:
    """Resolve the role AppFlow assumes to run Data API statements on the cluster.

    Without a ``username`` the role can fetch credentials for any database user of
    the cluster. Creating cluster users is always denied.
    """
    params = DataApiRoleParams(
        profile_id=profile_id,
        cluster=cluster,
        database_name=database_name,
        username=username,
        environment=environment,
    )
    return resolve(role_source(override, params), _synthesize_data_api_role)

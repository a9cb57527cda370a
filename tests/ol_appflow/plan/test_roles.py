import pytest

from ol_appflow.plan.models import (
    AccessRole,
    AwsEnvironment,
    ManagedPolicy,
    RoleAttachmentAction,
    RoleReference,
    StorageLocation,
    TargetCluster,
    evaluate_statements,
)
from ol_appflow.plan.roles import resolve_data_api_role, resolve_storage_access_role

CLUSTER = TargetCluster(cluster_identifier="c1")
OVERRIDE = RoleReference(arn="arn:aws:iam::123456789012:role/existing")


def _storage_role(resolution) -> AccessRole:
    return next(e for e in resolution.entities if isinstance(e, AccessRole))


def _attachment(resolution) -> RoleAttachmentAction:
    return next(e for e in resolution.entities if isinstance(e, RoleAttachmentAction))


def _policy(resolution) -> ManagedPolicy:
    return next(e for e in resolution.entities if isinstance(e, ManagedPolicy))


def _statement(policy: ManagedPolicy, sid: str):
    return next(stmt for stmt in policy.statements if stmt.sid == sid)


class TestStorageAccessRole:
    def test_synthesized_role_trusts_redshift(self, environment):
        resolution = resolve_storage_access_role(
            "warehouse",
            CLUSTER,
            StorageLocation(bucket_name="ol-staging", prefix="exports"),
            environment,
        )
        role = _storage_role(resolution)
        assert role.kind == "storage_access"
        assert role.trust_policy()["Statement"][0]["Principal"] == {
            "Service": "redshift.amazonaws.com"
        }
        assert resolution.role_arn == (
            "arn:aws:iam::123456789012:role/warehouse-redshift-role"
        )

    @pytest.mark.parametrize(
        ("prefix", "scope"),
        [
            ("exports", "exports/*"),
            ("exports/daily", "exports/daily/*"),
            ("/exports", "/exports/*"),
            ("exports/", "exports//*"),
            (None, "*"),
            ("", "*"),
        ],
    )
    def test_read_grant_scope(self, environment, prefix, scope):
        resolution = resolve_storage_access_role(
            "warehouse",
            CLUSTER,
            StorageLocation(bucket_name="ol-staging", prefix=prefix),
            environment,
        )
        (statement,) = _storage_role(resolution).statements
        assert statement.effect == "Allow"
        assert statement.resources == [
            "arn:aws:s3:::ol-staging",
            f"arn:aws:s3:::ol-staging/{scope}",
        ]

    def test_attachment_action_is_keyed_by_profile_id(self, environment):
        location = StorageLocation(bucket_name="ol-staging")
        first = _attachment(
            resolve_storage_access_role("warehouse", CLUSTER, location, environment)
        )
        second = _attachment(
            resolve_storage_access_role("warehouse", CLUSTER, location, environment)
        )
        assert first.physical_id == "warehouse-redshift-role-attach"
        assert first.physical_id == second.physical_id
        assert first.action == "modifyClusterIamRoles"
        assert first.parameters == {
            "ClusterIdentifier": "c1",
            "AddIamRoles": ["arn:aws:iam::123456789012:role/warehouse-redshift-role"],
        }

    def test_attachment_authorization_is_scoped(self, environment):
        resolution = resolve_storage_access_role(
            "warehouse", CLUSTER, StorageLocation(bucket_name="b"), environment
        )
        pass_role, modify = _attachment(resolution).authorization
        assert pass_role.actions == ["iam:PassRole"]
        assert pass_role.resources == [resolution.role_arn]
        assert modify.actions == ["redshift:ModifyClusterIamRoles"]
        assert modify.resources == [
            "arn:aws:redshift:us-east-1:123456789012:cluster:c1"
        ]

    def test_attachment_is_ordered_after_role_and_cluster(self, environment):
        resolution = resolve_storage_access_role(
            "warehouse", CLUSTER, StorageLocation(bucket_name="b"), environment
        )
        assert set(resolution.edges) == {
            ("warehouse-redshift-role-attach", "warehouse-redshift-role"),
            ("warehouse-redshift-role-attach", "cluster:c1"),
        }
        assert "warehouse-redshift-role-attach" in resolution.profile_dependencies

    def test_override_creates_nothing(self, environment):
        resolution = resolve_storage_access_role(
            "warehouse",
            CLUSTER,
            StorageLocation(bucket_name="b"),
            environment,
            override=OVERRIDE,
        )
        assert resolution.role_arn == OVERRIDE.arn
        assert resolution.entities == ()
        assert resolution.edges == ()

    def test_arns_follow_partition(self):
        gov = AwsEnvironment(
            partition="aws-us-gov", region="us-gov-west-1", account_id="111122223333"
        )
        resolution = resolve_storage_access_role(
            "warehouse", CLUSTER, StorageLocation(bucket_name="b"), gov
        )
        assert resolution.role_arn.startswith("arn:aws-us-gov:iam::111122223333:")
        _, modify = _attachment(resolution).authorization
        assert modify.resources[0].startswith("arn:aws-us-gov:redshift:us-gov-west-1:")


class TestDataApiRole:
    def test_policy_has_four_statements_in_order(self, environment):
        resolution = resolve_data_api_role(
            "warehouse", CLUSTER, "db1", environment, username="bob"
        )
        policy = _policy(resolution)
        assert [stmt.sid for stmt in policy.statements] == [
            "DataAPIPermissions",
            "GetCredentialsForAPIUser",
            "DenyCreateAPIUser",
            "ServiceLinkedRole",
        ]
        assert [stmt.effect for stmt in policy.statements] == [
            "Allow",
            "Allow",
            "Deny",
            "Allow",
        ]
        assert _statement(policy, "DataAPIPermissions").resources == ["*"]

    def test_role_trusts_appflow(self, environment):
        resolution = resolve_data_api_role("warehouse", CLUSTER, "db1", environment)
        role = next(e for e in resolution.entities if isinstance(e, AccessRole))
        assert role.trust_service == "appflow.amazonaws.com"
        assert role.statements == []

    def test_credentials_scope_with_username(self, environment):
        policy = _policy(
            resolve_data_api_role(
                "warehouse", CLUSTER, "db1", environment, username="alice"
            )
        )
        dbname, dbuser = _statement(policy, "GetCredentialsForAPIUser").resources
        assert dbname == "arn:aws:redshift:us-east-1:123456789012:dbname:c1/db1"
        assert dbuser.endswith("/alice")

    def test_credentials_scope_without_username(self, environment):
        policy = _policy(
            resolve_data_api_role("warehouse", CLUSTER, "db1", environment)
        )
        _, dbuser = _statement(policy, "GetCredentialsForAPIUser").resources
        assert dbuser == "arn:aws:redshift:us-east-1:123456789012:dbuser:c1/*"

    @pytest.mark.parametrize("username", ["alice", None])
    def test_deny_create_user_is_always_wildcarded(self, environment, username):
        policy = _policy(
            resolve_data_api_role(
                "warehouse", CLUSTER, "db1", environment, username=username
            )
        )
        deny = _statement(policy, "DenyCreateAPIUser")
        assert deny.actions == ["redshift:CreateClusterUser"]
        assert deny.resources == [
            "arn:aws:redshift:us-east-1:123456789012:dbuser:c1/*"
        ]

    def test_deny_wins_over_allow(self, environment):
        policy = _policy(
            resolve_data_api_role(
                "warehouse", CLUSTER, "db1", environment, username="alice"
            )
        )
        statements = [
            *policy.statements,
            policy.statements[0].model_copy(
                update={"sid": "TooBroad", "actions": ["redshift:*"]}
            ),
        ]
        user_arn = "arn:aws:redshift:us-east-1:123456789012:dbuser:c1/alice"
        assert (
            evaluate_statements(statements, "redshift:CreateClusterUser", user_arn)
            == "Deny"
        )
        assert (
            evaluate_statements(statements, "redshift:GetClusterCredentials", user_arn)
            == "Allow"
        )

    def test_service_linked_role_condition(self, environment):
        policy = _policy(
            resolve_data_api_role("warehouse", CLUSTER, "db1", environment)
        )
        statement = _statement(policy, "ServiceLinkedRole")
        assert statement.conditions == {
            "StringEquals": {"iam:AWSServiceName": "redshift-data.amazonaws.com"}
        }
        assert statement.resources == [
            "arn:aws:iam::123456789012:role/aws-service-role/"
            "redshift-data.amazonaws.com/AWSServiceRoleForRedshift"
        ]

    def test_profile_waits_for_policy(self, environment):
        resolution = resolve_data_api_role("warehouse", CLUSTER, "db1", environment)
        assert resolution.edges == (
            (
                "warehouse-appflow-data-api-role-policy",
                "warehouse-appflow-data-api-role",
            ),
        )
        assert set(resolution.profile_dependencies) == {
            "warehouse-appflow-data-api-role",
            "warehouse-appflow-data-api-role-policy",
        }

    def test_override_creates_nothing(self, environment):
        resolution = resolve_data_api_role(
            "warehouse", CLUSTER, "db1", environment, override=OVERRIDE
        )
        assert resolution.entities == ()
        assert resolution.role_arn == OVERRIDE.arn

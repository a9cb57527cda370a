"""Tests for the Redshift cluster IAM role attachment dynamic provider."""

from unittest import mock

import pytest
from botocore.exceptions import ClientError

from ol_appflow.plan.models import RoleAttachmentAction, StorageLocation, TargetCluster
from ol_appflow.plan.roles import resolve_storage_access_role
from ol_appflow.providers.redshift import (
    ClusterIamRoleAttachmentProvider,
    attachment_props,
)

ROLE_ARN = "arn:aws:iam::123456789012:role/warehouse-redshift-role"


def _client(attached: list[str]) -> mock.MagicMock:
    client = mock.MagicMock()
    client.describe_clusters.return_value = {
        "Clusters": [
            {
                "ClusterIdentifier": "c1",
                "IamRoles": [
                    {"IamRoleArn": arn, "ApplyStatus": "in-sync"} for arn in attached
                ],
            }
        ]
    }
    return client


@pytest.fixture
def props(environment):
    resolution = resolve_storage_access_role(
        "warehouse",
        TargetCluster(cluster_identifier="c1"),
        StorageLocation(bucket_name="ol-staging"),
        environment,
    )
    (action,) = [
        e for e in resolution.entities if isinstance(e, RoleAttachmentAction)
    ]
    return attachment_props(action, environment.region)


def test_props_from_action(props):
    assert props == {
        "physical_id": "warehouse-redshift-role-attach",
        "cluster_identifier": "c1",
        "role_arns": [ROLE_ARN],
        "region": "us-east-1",
    }


def test_create_attaches_and_uses_physical_id(props):
    client = _client([])
    with mock.patch(
        "ol_appflow.providers.redshift.role_attachment.boto3.client",
        return_value=client,
    ):
        result = ClusterIamRoleAttachmentProvider().create(props)
    client.modify_cluster_iam_roles.assert_called_once_with(
        ClusterIdentifier="c1", AddIamRoles=[ROLE_ARN]
    )
    assert result.id == "warehouse-redshift-role-attach"


def test_create_is_a_noop_when_already_attached(props):
    client = _client([ROLE_ARN])
    with mock.patch(
        "ol_appflow.providers.redshift.role_attachment.boto3.client",
        return_value=client,
    ):
        ClusterIamRoleAttachmentProvider().create(props)
    client.modify_cluster_iam_roles.assert_not_called()


def test_create_surfaces_provider_errors(props):
    client = _client([])
    client.modify_cluster_iam_roles.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}},
        "ModifyClusterIamRoles",
    )
    with (
        mock.patch(
            "ol_appflow.providers.redshift.role_attachment.boto3.client",
            return_value=client,
        ),
        pytest.raises(RuntimeError, match="c1"),
    ):
        ClusterIamRoleAttachmentProvider().create(props)


def test_update_in_place_for_same_cluster(props):
    new_props = {**props, "role_arns": [ROLE_ARN, "arn:aws:iam::1:role/other"]}
    diff = ClusterIamRoleAttachmentProvider().diff(
        "warehouse-redshift-role-attach", props, new_props
    )
    assert diff.changes
    assert diff.replaces == []

    client = _client([ROLE_ARN])
    with mock.patch(
        "ol_appflow.providers.redshift.role_attachment.boto3.client",
        return_value=client,
    ):
        ClusterIamRoleAttachmentProvider().update(
            "warehouse-redshift-role-attach", props, new_props
        )
    client.modify_cluster_iam_roles.assert_called_once_with(
        ClusterIdentifier="c1", AddIamRoles=["arn:aws:iam::1:role/other"]
    )


def test_cluster_change_replaces(props):
    diff = ClusterIamRoleAttachmentProvider().diff(
        "warehouse-redshift-role-attach", props, {**props, "cluster_identifier": "c2"}
    )
    assert diff.replaces == ["cluster_identifier"]
    assert diff.delete_before_replace


def test_unchanged_props_have_no_diff(props):
    diff = ClusterIamRoleAttachmentProvider().diff(
        "warehouse-redshift-role-attach", props, dict(props)
    )
    assert not diff.changes


def test_delete_detaches(props):
    client = _client([ROLE_ARN])
    with mock.patch(
        "ol_appflow.providers.redshift.role_attachment.boto3.client",
        return_value=client,
    ):
        ClusterIamRoleAttachmentProvider().delete(
            "warehouse-redshift-role-attach", props
        )
    client.modify_cluster_iam_roles.assert_called_once_with(
        ClusterIdentifier="c1", RemoveIamRoles=[ROLE_ARN]
    )


def test_delete_tolerates_missing_cluster(props):
    client = _client([])
    client.describe_clusters.side_effect = ClientError(
        {"Error": {"Code": "ClusterNotFound", "Message": "gone"}}, "DescribeClusters"
    )
    with mock.patch(
        "ol_appflow.providers.redshift.role_attachment.boto3.client",
        return_value=client,
    ):
        ClusterIamRoleAttachmentProvider().delete(
            "warehouse-redshift-role-attach", props
        )
    client.modify_cluster_iam_roles.assert_not_called()

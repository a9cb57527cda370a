"""Pulumi dynamic provider attaching IAM roles to an existing Redshift cluster."""

from typing import Any

import boto3
import pulumi
from botocore.exceptions import ClientError
from pulumi import dynamic

from ol_appflow.plan.models import RoleAttachmentAction


def attachment_props(action: RoleAttachmentAction, region: str) -> dict[str, Any]:
    """Translate a planned attachment action into dynamic resource inputs."""
    return {
        "physical_id": action.physical_id,
        "cluster_identifier": action.cluster_identifier,
        "role_arns": action.role_arns,
        "region": region,
    }


def _attached_role_arns(client: Any, cluster_identifier: str) -> set[str]:
    clusters = client.describe_clusters(ClusterIdentifier=cluster_identifier)
    return {
        iam_role["IamRoleArn"]
        for cluster in clusters["Clusters"]
        for iam_role in cluster.get("IamRoles", [])
    }


class ClusterIamRoleAttachmentProvider(dynamic.ResourceProvider):
    """Attach roles with ``ModifyClusterIamRoles``, at most once per physical id."""

    def _attach(self, props: dict[str, Any]) -> list[str]:
        client = boto3.client("redshift", region_name=props["region"])
        cluster_identifier = props["cluster_identifier"]
        attached = _attached_role_arns(client, cluster_identifier)
        missing = [arn for arn in props["role_arns"] if arn not in attached]
        if missing:
            client.modify_cluster_iam_roles(
                ClusterIdentifier=cluster_identifier, AddIamRoles=missing
            )
            pulumi.log.info(
                f"Attached {missing} to Redshift cluster {cluster_identifier}"
            )
        else:
            pulumi.log.debug(
                f"All roles already attached to Redshift cluster {cluster_identifier}"
            )
        return missing

    def create(self, props: dict[str, Any]) -> dynamic.CreateResult:
        try:
            self._attach(props)
        except ClientError as e:
            msg = (
                f"Failed to attach roles to Redshift cluster "
                f"{props['cluster_identifier']}: {e}"
            )
            raise RuntimeError(msg) from e
        return dynamic.CreateResult(id_=props["physical_id"], outs=props)

    def diff(
        self, _id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> dynamic.DiffResult:
        changes = [
            key
            for key in ("cluster_identifier", "role_arns", "region")
            if old_props.get(key) != new_props.get(key)
        ]
        replaces = [
            key for key in changes if key in ("cluster_identifier", "region")
        ]
        return dynamic.DiffResult(
            changes=bool(changes),
            replaces=replaces,
            delete_before_replace=bool(replaces),
        )

    def update(
        self, _id: str, _olds: dict[str, Any], news: dict[str, Any]
    ) -> dynamic.UpdateResult:
        # Same physical id, so re-applying only adds roles that are not attached yet
        try:
            self._attach(news)
        except ClientError as e:
            msg = (
                f"Failed to update role attachment {_id} on Redshift cluster "
                f"{news['cluster_identifier']}: {e}"
            )
            raise RuntimeError(msg) from e
        return dynamic.UpdateResult(outs=news)

    def delete(self, _id: str, props: dict[str, Any]) -> None:
        cluster_identifier = props.get("cluster_identifier")
        try:
            client = boto3.client("redshift", region_name=props.get("region"))
            attached = _attached_role_arns(client, cluster_identifier)
            to_remove = [arn for arn in props.get("role_arns", []) if arn in attached]
            if to_remove:
                client.modify_cluster_iam_roles(
                    ClusterIdentifier=cluster_identifier, RemoveIamRoles=to_remove
                )
        except ClientError as e:
            pulumi.log.warn(
                f"Could not detach roles for {_id} from Redshift cluster "
                f"{cluster_identifier}, it may have already been removed: {e}"
            )


class ClusterIamRoleAttachment(dynamic.Resource):
    """Roles attached to a Redshift cluster, keyed by a stable physical id."""

    cluster_identifier: pulumi.Output[str]
    role_arns: pulumi.Output[list[str]]

    def __init__(
        self,
        name: str,
        props: dict[str, Any],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__(ClusterIamRoleAttachmentProvider(), name, props, opts)

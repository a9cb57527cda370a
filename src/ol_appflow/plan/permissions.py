"""Bucket permissions AppFlow needs, gathered across every profile in a stack.

The aggregator is created by the stack program, handed to each profile while it is
composed, and finalized once all profiles exist. Finalizing yields one bucket policy
document per bucket.
"""

from enum import Enum, unique
from typing import Any

import pulumi

from ol_appflow.lib.aws.iam_helper import (
    APPFLOW_SERVICE,
    policy_document,
    s3_bucket_arn,
)
from ol_appflow.plan.models import AwsEnvironment, PolicyStatement

BUCKET_READ_ACTIONS = ["s3:GetObject", "s3:ListBucket"]
BUCKET_WRITE_ACTIONS = [
    "s3:PutObject",
    "s3:AbortMultipartUpload",
    "s3:ListMultipartUploadParts",
    "s3:ListBucketMultipartUploads",
    "s3:GetBucketAcl",
    "s3:PutObjectAcl",
]


@unique
class AggregatorState(str, Enum):
    open = "open"
    finalized = "finalized"


class FlowPermissionsAggregator:
    def __init__(self, environment: AwsEnvironment):
        self.environment = environment
        self.state = AggregatorState.open
        self._bucket_actions: dict[str, dict[str, None]] = {}

    def _grant(self, bucket_name: str, actions: list[str]) -> None:
        if self.state is AggregatorState.finalized:
            msg = (
                f"Cannot grant AppFlow access to bucket {bucket_name} after the "
                "permissions have been finalized"
            )
            raise RuntimeError(msg)
        granted = self._bucket_actions.setdefault(bucket_name, {})
        for action in actions:
            granted.setdefault(action, None)
        pulumi.log.debug(f"AppFlow granted {actions} on bucket {bucket_name}")

    def grant_bucket_read(self, bucket_name: str) -> None:
        self._grant(bucket_name, BUCKET_READ_ACTIONS)

    def grant_bucket_write(self, bucket_name: str) -> None:
        self._grant(bucket_name, BUCKET_WRITE_ACTIONS)

    def grant_bucket_read_write(self, bucket_name: str) -> None:
        self._grant(bucket_name, BUCKET_READ_ACTIONS + BUCKET_WRITE_ACTIONS)

    def granted_actions(self, bucket_name: str) -> list[str]:
        return list(self._bucket_actions.get(bucket_name, {}))

    def bucket_statement(self, bucket_name: str) -> PolicyStatement:
        bucket_arn = s3_bucket_arn(self.environment.partition, bucket_name)
        return PolicyStatement(
            sid="AllowAppFlowAccess",
            principals={"Service": [APPFLOW_SERVICE]},
            actions=self.granted_actions(bucket_name),
            resources=[bucket_arn, f"{bucket_arn}/*"],
            conditions={
                "StringEquals": {"aws:SourceAccount": self.environment.account_id}
            },
        )

    def finalize(self) -> dict[str, dict[str, Any]]:
        """Close the aggregator and render a bucket policy for every granted bucket.

        Calling it again returns the same documents.
        """
        self.state = AggregatorState.finalized
        return {
            bucket_name: policy_document(
                [self.bucket_statement(bucket_name).to_document()]
            )
            for bucket_name in self._bucket_actions
        }

import json
import re
from typing import Any

from parliament import analyze_policy_string
from parliament.finding import Finding

IAM_POLICY_VERSION = "2012-10-17"
IAM_ROLE_NAME_MAX_LENGTH = 64

APPFLOW_SERVICE = "appflow.amazonaws.com"
REDSHIFT_SERVICE = "redshift.amazonaws.com"
REDSHIFT_DATA_SERVICE = "redshift-data.amazonaws.com"


def iam_role_arn(partition: str, account_id: str, role_name: str) -> str:
    return f"arn:{partition}:iam::{account_id}:role/{role_name}"


def s3_bucket_arn(partition: str, bucket_name: str) -> str:
    return f"arn:{partition}:s3:::{bucket_name}"


def redshift_cluster_arn(
    partition: str, region: str, account_id: str, cluster_name: str
) -> str:
    return f"arn:{partition}:redshift:{region}:{account_id}:cluster:{cluster_name}"


def redshift_dbname_arn(
    partition: str, region: str, account_id: str, cluster_name: str, database: str
) -> str:
    return (
        f"arn:{partition}:redshift:{region}:{account_id}:dbname:"
        f"{cluster_name}/{database}"
    )


def redshift_dbuser_arn(
    partition: str, region: str, account_id: str, cluster_name: str, username: str
) -> str:
    return (
        f"arn:{partition}:redshift:{region}:{account_id}:dbuser:"
        f"{cluster_name}/{username}"
    )


def redshift_data_service_linked_role_arn(partition: str, account_id: str) -> str:
    return (
        f"arn:{partition}:iam::{account_id}:role/aws-service-role/"
        f"{REDSHIFT_DATA_SERVICE}/AWSServiceRoleForRedshift"
    )


def appflow_connector_profile_arn(
    partition: str, region: str, account_id: str, profile_name: str
) -> str:
    return (
        f"arn:{partition}:appflow:{region}:{account_id}:connectorprofile/"
        f"{profile_name}"
    )


def service_trust_policy_template(service: str) -> dict[str, Any]:
    """Trust policy allowing a single AWS service principal to assume a role.

    :param service: The service principal, e.g. ``redshift.amazonaws.com``.
    :type service: str

    :returns: A dictionary object representing an assume-role policy document.
    """
    return {
        "Version": IAM_POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": "sts:AssumeRole",
                "Principal": {"Service": service},
            }
        ],
    }


def policy_document(statements: list[dict[str, Any]]) -> dict[str, Any]:
    return {"Version": IAM_POLICY_VERSION, "Statement": statements}


def _is_parliament_finding_filtered(
    finding: Finding, parliament_config: dict[str, Any]
) -> bool:
    if finding.issue not in parliament_config:
        return False
    ignore_locations = parliament_config[finding.issue].get("ignore_locations", [])
    if not ignore_locations:
        return True
    for location in ignore_locations:
        for action in location.get("actions", []):
            if any(
                re.findall(action, finding_action, re.IGNORECASE)
                for finding_action in finding.location.get("actions", [])
            ):
                return True
    return False


def lint_iam_policy(
    policy_document: str | dict[str, Any],
    stringify: bool = False,  # noqa: FBT001, FBT002
    parliament_config: dict[str, Any] | None = None,
) -> str | dict[str, Any]:
    """Lint the contents of an IAM policy and abort execution if issues are found.

    :param policy_document: An IAM policy document represented as a JSON encoded string
        or a dictionary
    :type policy_document: Union[Text, dict[Text, Any]]

    :param stringify: If set to true then the dictionary of the policy document will be
        returned as a JSON string.
    :type stringify: bool

    :param parliament_config: A configuration object to customize the strictness and
        error checking of the Parliament library. An issue listed without any
        ``ignore_locations`` is ignored everywhere.
    :type parliament_config: dict

    :raises ValueError: If there are linting violations detected, with the findings
        attached.

    :returns: The contents of the policy document that is passed to the function.

    :rtype: Union[Text, dict[Text, Any]]
    """
    stringified_document = None
    if not isinstance(policy_document, str):
        stringified_document = json.dumps(policy_document)
    findings = analyze_policy_string(
        stringified_document or policy_document,
        include_community_auditors=True,
        config=parliament_config,
    ).findings
    findings = [
        finding
        for finding in findings
        if not _is_parliament_finding_filtered(finding, parliament_config or {})
    ]
    if findings:
        msg = "Potential issues found with IAM policy document"
        raise ValueError(msg, findings)
    return (
        stringified_document if stringify and stringified_document else policy_document
    )

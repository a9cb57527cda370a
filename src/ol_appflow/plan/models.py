"""Entities produced by composing a Redshift connector profile.

Everything in this module is plain data. Names and ARNs are computed up front from
the ``AwsEnvironment`` so that a plan can be inspected and ordered without talking
to AWS; the Pulumi component later materializes the entities as real resources.
"""

import re
from fnmatch import fnmatchcase
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic.alias_generators import to_camel

from ol_appflow.lib.aws.iam_helper import (
    appflow_connector_profile_arn,
    policy_document,
    service_trust_policy_template,
)
from ol_appflow.lib.errors import ConfigurationError

Effect = Literal["Allow", "Deny"]
Decision = Literal["Allow", "Deny", "ImplicitDeny"]

CONNECTOR_PROFILE_ARN_PATTERN = re.compile(
    r"^arn:(?P<partition>[^:]+):appflow:(?P<region>[^:]+):(?P<account_id>\d+):"
    r"connectorprofile/(?P<name>[\w/!@#+=.-]+)$"
)


class AwsEnvironment(BaseModel):
    """Partition, region and account that every generated ARN is scoped to."""

    model_config = ConfigDict(frozen=True)

    partition: str = "aws"
    region: str
    account_id: str


class StorageLocation(BaseModel):
    """Intermediate S3 location used to stage data on its way into Redshift."""

    model_config = ConfigDict(frozen=True)

    bucket_name: str = Field(min_length=1)
    prefix: str | None = None

    @field_validator("bucket_name")
    @classmethod
    def bucket_name_not_blank(cls, bucket_name: str) -> str:
        if not bucket_name.strip():
            msg = "The bucket name must not be blank"
            raise ValueError(msg)
        return bucket_name

    @property
    def object_key_pattern(self) -> str:
        """Object key scope for grants on this location: ``<prefix>/*`` or ``*``."""
        return f"{self.prefix}/*" if self.prefix else "*"


class TargetCluster(BaseModel):
    """Reference to a Redshift cluster that is managed elsewhere."""

    model_config = ConfigDict(frozen=True)

    cluster_identifier: str = Field(min_length=1)
    name: str | None = None

    @field_validator("cluster_identifier")
    @classmethod
    def identifier_not_blank(cls, cluster_identifier: str) -> str:
        if not cluster_identifier.strip():
            msg = "The cluster identifier must not be blank"
            raise ValueError(msg)
        return cluster_identifier


class BasicCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str | None = None
    password: SecretStr | None = None


class RoleReference(BaseModel):
    """An IAM role supplied by the caller. It is used as-is and never modified."""

    model_config = ConfigDict(frozen=True)

    arn: str = Field(min_length=1)


class PolicyStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    sid: str | None = None
    effect: Effect = "Allow"
    actions: list[str]
    resources: list[str] = Field(default_factory=list)
    principals: dict[str, list[str]] | None = None
    conditions: dict[str, dict[str, str | list[str]]] | None = None

    def to_document(self) -> dict[str, Any]:
        statement: dict[str, Any] = {}
        if self.sid:
            statement["Sid"] = self.sid
        statement["Effect"] = self.effect
        if self.principals:
            statement["Principal"] = self.principals
        statement["Action"] = list(self.actions)
        if self.resources:
            statement["Resource"] = list(self.resources)
        if self.conditions:
            statement["Condition"] = self.conditions
        return statement

    def matches(self, action: str, resource: str) -> bool:
        action_match = any(
            fnmatchcase(action.lower(), pattern.lower()) for pattern in self.actions
        )
        return action_match and any(
            fnmatchcase(resource, pattern) for pattern in self.resources
        )


def evaluate_statements(
    statements: list[PolicyStatement], action: str, resource: str
) -> Decision:
    """Decide whether ``action`` on ``resource`` is allowed by ``statements``.

    Conditions are not evaluated. A matching Deny wins over every matching Allow
    regardless of statement order.
    """
    matching = [stmt for stmt in statements if stmt.matches(action, resource)]
    if any(stmt.effect == "Deny" for stmt in matching):
        return "Deny"
    if matching:
        return "Allow"
    return "ImplicitDeny"


class AccessRole(BaseModel):
    """An IAM role synthesized for the profile."""

    model_config = ConfigDict(frozen=True)

    logical_name: str
    role_name: str
    arn: str
    kind: Literal["storage_access", "data_api"]
    trust_service: str
    statements: list[PolicyStatement] = Field(default_factory=list)

    def trust_policy(self) -> dict[str, Any]:
        return service_trust_policy_template(self.trust_service)

    def inline_policy(self) -> dict[str, Any] | None:
        if not self.statements:
            return None
        return policy_document([stmt.to_document() for stmt in self.statements])


class ManagedPolicy(BaseModel):
    """A standalone policy attached to exactly one synthesized role."""

    model_config = ConfigDict(frozen=True)

    logical_name: str
    policy_name: str
    role_logical_name: str
    statements: list[PolicyStatement]

    def document(self) -> dict[str, Any]:
        return policy_document([stmt.to_document() for stmt in self.statements])


class RoleAttachmentAction(BaseModel):
    """One-shot call that attaches an IAM role to a Redshift cluster.

    ``physical_id`` is stable for a given profile so repeating the action updates the
    existing attachment instead of creating another one.
    """

    model_config = ConfigDict(frozen=True)

    logical_name: str
    physical_id: str
    service: str = "Redshift"
    action: str = "modifyClusterIamRoles"
    parameters: dict[str, Any]
    authorization: list[PolicyStatement]

    @property
    def cluster_identifier(self) -> str:
        return self.parameters["ClusterIdentifier"]

    @property
    def role_arns(self) -> list[str]:
        return list(self.parameters["AddIamRoles"])

    def authorization_policy(self) -> dict[str, Any]:
        return policy_document([stmt.to_document() for stmt in self.authorization])


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class RedshiftConnectorProfileProperties(_WireModel):
    bucket_name: str
    bucket_prefix: str | None = None
    role_arn: str
    cluster_identifier: str
    database_name: str
    data_api_role_arn: str


class RedshiftConnectorProfileCredentials(_WireModel):
    username: str | None = None
    password: SecretStr | None = None


class ConnectorProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_name: str
    profile_name: str
    arn: str
    connector_type: Literal["Redshift"] = "Redshift"
    connection_mode: Literal["Public", "Private"] = "Public"
    kms_arn: str | None = None
    properties: RedshiftConnectorProfileProperties
    credentials: RedshiftConnectorProfileCredentials

    def connector_profile_properties(self) -> dict[str, Any]:
        return {
            "redshift": self.properties.model_dump(by_alias=True, exclude_none=True)
        }

    def connector_profile_credentials(self) -> dict[str, Any]:
        password = self.credentials.password
        return {
            "redshift": {
                "username": self.credentials.username,
                "password": password.get_secret_value() if password else None,
            }
        }


class ConnectorProfileReference(BaseModel):
    """Pointer to a connector profile that already exists."""

    model_config = ConfigDict(frozen=True)

    name: str
    arn: str

    @classmethod
    def from_arn(cls, arn: str) -> "ConnectorProfileReference":
        match = CONNECTOR_PROFILE_ARN_PATTERN.match(arn)
        if match is None:
            msg = f"'{arn}' is not a connector profile ARN"
            raise ConfigurationError("arn", msg)
        return cls(name=match.group("name"), arn=arn)

    @classmethod
    def from_name(
        cls, name: str, environment: AwsEnvironment
    ) -> "ConnectorProfileReference":
        if not name.strip():
            raise ConfigurationError("name", "The profile name must not be blank")
        return cls(
            name=name,
            arn=appflow_connector_profile_arn(
                environment.partition,
                environment.region,
                environment.account_id,
                name,
            ),
        )


def cluster_node(cluster: TargetCluster) -> str:
    return f"cluster:{cluster.cluster_identifier}"


def bucket_node(location: StorageLocation) -> str:
    return f"bucket:{location.bucket_name}"


def provided_role_node(role: RoleReference) -> str:
    return f"role:{role.arn}"

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ol_appflow.lib.aws.iam_helper import IAM_ROLE_NAME_MAX_LENGTH
from ol_appflow.lib.errors import ConfigurationError
from ol_appflow.plan.models import (
    BasicCredentials,
    RoleReference,
    StorageLocation,
    TargetCluster,
)
from ol_appflow.plan.roles import data_api_role_name, storage_access_role_name


def configuration_error(exc: ValidationError) -> ConfigurationError:
    """Report the first offending field of a failed pydantic validation."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"]) or "<root>"
    return ConfigurationError(field, error["msg"])


class RedshiftConnectorProfileConfig(BaseModel):
    """Inputs for composing an AppFlow connector profile that targets Redshift."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        min_length=1,
        description=(
            "Name of the connector profile. Generated role and action names are "
            "derived from it."
        ),
    )
    intermediate_location: StorageLocation = Field(
        description=(
            "Location that holds data retrieved by a flow before it is copied into "
            "the Redshift database"
        ),
    )
    cluster: TargetCluster
    database_name: str = Field(min_length=1)
    basic_auth: BasicCredentials = Field(default_factory=BasicCredentials)
    bucket_access_role: RoleReference | None = Field(
        default=None,
        description=(
            "Role the cluster assumes to read the intermediate location. Generated "
            "and attached to the cluster when omitted."
        ),
    )
    data_api_role: RoleReference | None = Field(
        default=None,
        description=(
            "Role AppFlow assumes to use the Redshift Data API. Generated when "
            "omitted."
        ),
    )
    connection_mode: Literal["Public", "Private"] = "Public"
    kms_key_arn: str | None = None

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise configuration_error(exc) from exc

    @field_validator("name", "database_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "A value is required"
            raise ValueError(msg)
        return value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RedshiftConnectorProfileConfig":
        """Validate raw input, reporting the first offending field.

        :raises ConfigurationError: If ``data`` does not describe a valid profile.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise configuration_error(exc) from exc

    def check_generated_names(self) -> None:
        generated = []
        if self.bucket_access_role is None:
            generated.append(storage_access_role_name(self.name))
        if self.data_api_role is None:
            generated.append(data_api_role_name(self.name))
        for role_name in generated:
            if len(role_name) > IAM_ROLE_NAME_MAX_LENGTH:
                msg = (
                    f"Generated role name '{role_name}' exceeds "
                    f"{IAM_ROLE_NAME_MAX_LENGTH} characters"
                )
                raise ConfigurationError("name", msg)

from ol_appflow.plan.composer import compose_credentials, compose_properties
from ol_appflow.plan.config import RedshiftConnectorProfileConfig


def test_properties_place_resolved_roles(profile_config):
    properties = compose_properties(profile_config, "arn:storage", "arn:data-api")
    assert properties.model_dump(by_alias=True) == {
        "bucketName": "ol-staging",
        "bucketPrefix": "exports",
        "roleArn": "arn:storage",
        "clusterIdentifier": "c1",
        "databaseName": "db1",
        "dataApiRoleArn": "arn:data-api",
    }


def test_credentials_exist_without_values(profile_data):
    profile_data["basic_auth"] = {}
    credentials = compose_credentials(
        RedshiftConnectorProfileConfig.from_dict(profile_data)
    )
    assert credentials.username is None
    assert credentials.password is None

"""Tests for token resolution from AWS and GCP secret stores."""

import json
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests
from botocore.exceptions import ClientError
from google.api_core.exceptions import NotFound

from scripts.aliaswatch.secrets import SecretResolutionError, resolve_secret


def test_plain_value_returned_unchanged():
    assert resolve_secret("plain-token") == "plain-token"


class TestAwsSecret:

    @pytest.fixture
    def secrets_client(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        with patch("boto3.client") as client_factory:
            client = client_factory.return_value
            client.factory = client_factory
            yield client

    def test_whole_secret_string(self, secrets_client):
        secrets_client.get_secret_value.return_value = {"SecretString": "addy-token"}

        assert resolve_secret("aws-secret://aliaswatch/anonaddy") == "addy-token"
        secrets_client.factory.assert_called_once_with("secretsmanager", region_name="eu-west-1")
        secrets_client.get_secret_value.assert_called_once_with(SecretId="aliaswatch/anonaddy")

    def test_json_field(self, secrets_client):
        secrets_client.get_secret_value.return_value = {
            "SecretString": json.dumps({"anonaddy": "addy-token", "hibp": "hibp-token"})
        }

        assert resolve_secret("aws-secret://aliaswatch#hibp") == "hibp-token"
        secrets_client.get_secret_value.assert_called_once_with(SecretId="aliaswatch")

    def test_missing_json_field(self, secrets_client):
        secrets_client.get_secret_value.return_value = {"SecretString": json.dumps({"anonaddy": "x"})}

        with pytest.raises(SecretResolutionError, match="no JSON field 'hibp'"):
            resolve_secret("aws-secret://aliaswatch#hibp")

    def test_binary_secret_rejected(self, secrets_client):
        secrets_client.get_secret_value.return_value = {"SecretBinary": b"\x00"}

        with pytest.raises(SecretResolutionError, match="no SecretString"):
            resolve_secret("aws-secret://aliaswatch")

    def test_client_error(self, secrets_client):
        secrets_client.get_secret_value.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "not found"}},
            "GetSecretValue",
        )

        with pytest.raises(SecretResolutionError, match="AWS secret 'aliaswatch'"):
            resolve_secret("aws-secret://aliaswatch")

    def test_empty_reference(self):
        with pytest.raises(SecretResolutionError, match="names no secret"):
            resolve_secret("aws-secret://#hibp")

    def test_boto3_not_installed(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "boto3", None)

        with pytest.raises(SecretResolutionError, match=r"aliaswatch\[aws\]"):
            resolve_secret("aws-secret://aliaswatch")


class TestGcpSecret:

    @pytest.fixture
    def secret_manager(self):
        with patch("google.cloud.secretmanager.SecretManagerServiceClient") as client_cls:
            client = client_cls.return_value
            client.access_secret_version.return_value.payload.data = b"hibp-token"
            yield client

    def test_full_version_name(self, secret_manager):
        ref = "projects/my-proj/secrets/hibp/versions/3"

        assert resolve_secret(f"gcp-secret://{ref}") == "hibp-token"
        secret_manager.access_secret_version.assert_called_once_with(request={"name": ref})

    def test_bare_name_uses_project_env(self, secret_manager, monkeypatch):
        monkeypatch.setenv("GCP_PROJECT_ID", "my-proj")

        resolve_secret("gcp-secret://hibp")

        secret_manager.access_secret_version.assert_called_once_with(
            request={"name": "projects/my-proj/secrets/hibp/versions/latest"}
        )

    def test_bare_name_uses_metadata_project(self, secret_manager, monkeypatch):
        monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
        metadata = MagicMock(text="meta-proj\n")

        with patch("scripts.aliaswatch.secrets.requests.get", return_value=metadata) as get:
            resolve_secret("gcp-secret://hibp")

        assert get.call_args.kwargs["headers"] == {"Metadata-Flavor": "Google"}
        secret_manager.access_secret_version.assert_called_once_with(
            request={"name": "projects/meta-proj/secrets/hibp/versions/latest"}
        )

    def test_metadata_unreachable(self, secret_manager, monkeypatch):
        monkeypatch.delenv("GCP_PROJECT_ID", raising=False)

        with patch(
            "scripts.aliaswatch.secrets.requests.get",
            side_effect=requests.ConnectionError("no metadata server"),
        ):
            with pytest.raises(SecretResolutionError, match="GCP_PROJECT_ID"):
                resolve_secret("gcp-secret://hibp")

        secret_manager.access_secret_version.assert_not_called()

    def test_api_error(self, secret_manager):
        secret_manager.access_secret_version.side_effect = NotFound("secret hibp not found")

        with pytest.raises(SecretResolutionError, match="GCP secret"):
            resolve_secret("gcp-secret://projects/p/secrets/hibp/versions/latest")

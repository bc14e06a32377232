"""Resolution of token values that point at a cloud secret store.

ANONADDY_TOKEN and HIBP_TOKEN may hold the token itself or a reference:

  aws-secret://NAME                           SecretString of NAME (AWS Secrets Manager)
  aws-secret://NAME#FIELD                     FIELD of the JSON object stored in NAME
  gcp-secret://projects/P/secrets/S/versions/V  that exact version (GCP Secret Manager)
  gcp-secret://NAME                           latest version of NAME in the current project

The cloud SDKs are optional extras and only imported when a reference of
their kind is used. Every failure surfaces as SecretResolutionError.
"""

from __future__ import annotations

import json
import logging
import os

import requests

logger = logging.getLogger("aliaswatch.secrets")

AWS_PREFIX = "aws-secret://"
GCP_PREFIX = "gcp-secret://"
GCP_METADATA_PROJECT_URL = "http://metadata.google.internal/computeMetadata/v1/project/project-id"


class SecretResolutionError(ValueError):
    """A token reference could not be turned into a token."""


def resolve_secret(value: str) -> str:
    """Return the token ``value`` stands for; plain values come back unchanged."""
    if value.startswith(AWS_PREFIX):
        return _resolve_aws_secret(value[len(AWS_PREFIX):])
    if value.startswith(GCP_PREFIX):
        return _resolve_gcp_secret(value[len(GCP_PREFIX):])
    return value


def _resolve_aws_secret(ref: str) -> str:
    try:
        import boto3
        from botocore.exceptions import BotoCoreError, ClientError
    except ImportError as exc:
        raise SecretResolutionError(
            "aws-secret:// tokens need boto3, install aliaswatch[aws]"
        ) from exc

    secret_name, _, json_field = ref.partition("#")
    if not secret_name:
        raise SecretResolutionError("aws-secret:// reference names no secret")

    logger.info("Resolving token from AWS Secrets Manager", extra={"service": "aws"})
    try:
        client = boto3.client(
            "secretsmanager", region_name=os.environ.get("AWS_REGION", "us-east-1")
        )
        resp = client.get_secret_value(SecretId=secret_name)
    except (BotoCoreError, ClientError) as exc:
        raise SecretResolutionError(f"AWS secret {secret_name!r}: {exc}") from exc

    secret_string = resp.get("SecretString")
    if secret_string is None:
        raise SecretResolutionError(f"AWS secret {secret_name!r} has no SecretString")
    if not json_field:
        return secret_string
    try:
        return str(json.loads(secret_string)[json_field])
    except (ValueError, KeyError, TypeError) as exc:
        raise SecretResolutionError(
            f"AWS secret {secret_name!r} has no JSON field {json_field!r}"
        ) from exc


def _resolve_gcp_secret(ref: str) -> str:
    try:
        from google.api_core.exceptions import GoogleAPIError
        from google.auth.exceptions import GoogleAuthError
        from google.cloud import secretmanager
    except ImportError as exc:
        raise SecretResolutionError(
            "gcp-secret:// tokens need google-cloud-secret-manager, install aliaswatch[gcp]"
        ) from exc

    if ref.startswith("projects/"):
        version_name = ref
    else:
        project = os.environ.get("GCP_PROJECT_ID") or _gcp_project_from_metadata()
        version_name = f"projects/{project}/secrets/{ref}/versions/latest"

    logger.info("Resolving token from GCP Secret Manager", extra={"service": "gcp"})
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": version_name})
    except (GoogleAPIError, GoogleAuthError) as exc:
        raise SecretResolutionError(f"GCP secret {version_name!r}: {exc}") from exc
    return response.payload.data.decode("UTF-8")


def _gcp_project_from_metadata() -> str:
    """Project id from the metadata server, only reachable on GCE / Cloud Run."""
    try:
        resp = requests.get(
            GCP_METADATA_PROJECT_URL,
            headers={"Metadata-Flavor": "Google"},
            timeout=2,
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise SecretResolutionError(
            "cannot determine the GCP project, set GCP_PROJECT_ID"
        ) from exc
    return resp.text.strip()

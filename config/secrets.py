"""
Centralized secret lookup for Story Playground.

Supports multiple secret backends:
- Environment variables (.env files for development)
- AWS Secrets Manager (production)
- Google Cloud Secret Manager (production)

Services read credentials through get_secret()/require_secret() instead of
os.getenv() so deployments can move keys into a managed store without code
changes.
"""

import os
import json
from typing import Optional
from enum import Enum


class SecretBackend(str, Enum):
    """Available secret storage backends."""
    ENV = "env"  # Environment variables (default for development)
    AWS = "aws"  # AWS Secrets Manager
    GCP = "gcp"  # Google Cloud Secret Manager


class SecretManager:
    """
    Secret manager with support for multiple backends.

    Usage:
        secret_mgr = SecretManager()
        api_key = secret_mgr.require_secret("OPENAI_API_KEY")
    """

    def __init__(self, backend: Optional[SecretBackend] = None):
        """
        Initialize secret manager.

        Args:
            backend: Secret backend to use (defaults to SECRET_BACKEND env var, then ENV)
        """
        self.backend = backend or SecretBackend(
            os.getenv("SECRET_BACKEND", "env")
        )

        # Backend clients are created on first use
        self._aws_client = None
        self._gcp_client = None
        self._cache: dict[str, Optional[str]] = {}

    def get_secret(self, secret_name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a secret from the configured backend.

        Values found in a managed backend are cached for the life of the
        manager. Environment lookups are never cached so tests and reloads
        see changes immediately.

        Args:
            secret_name: Name of the secret to retrieve
            default: Default value if secret not found

        Returns:
            Secret value or default if not found
        """
        if self.backend == SecretBackend.ENV:
            return os.getenv(secret_name, default)

        if secret_name in self._cache:
            value = self._cache[secret_name]
            return default if value is None else value

        if self.backend == SecretBackend.AWS:
            value = self._get_from_aws(secret_name)
        elif self.backend == SecretBackend.GCP:
            value = self._get_from_gcp(secret_name)
        else:
            raise ValueError(f"Unknown secret backend: {self.backend}")

        self._cache[secret_name] = value
        return default if value is None else value

    def _get_from_aws(self, secret_name: str) -> Optional[str]:
        """
        Get secret from AWS Secrets Manager.

        Requires: boto3, AWS credentials configured
        """
        from botocore.exceptions import ClientError

        if self._aws_client is None:
            self._aws_client = self._create_aws_client()

        try:
            response = self._aws_client.get_secret_value(SecretId=secret_name)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            if error_code == "ResourceNotFoundException":
                return None
            if error_code in ("InvalidRequestException", "InvalidParameterException"):
                raise ValueError(f"Invalid request for secret: {secret_name}") from e
            raise

        if "SecretString" in response:
            return _unwrap_json_secret(secret_name, response["SecretString"])
        return response["SecretBinary"].decode("utf-8")

    def _create_aws_client(self):
        try:
            import boto3
        except ImportError:
            raise ImportError(
                "boto3 required for AWS Secrets Manager. "
                "Install with: pip install boto3"
            )

        region = os.getenv("AWS_REGION", "us-east-1")
        return boto3.client(service_name="secretsmanager", region_name=region)

    def _get_from_gcp(self, secret_name: str) -> Optional[str]:
        """
        Get secret from Google Cloud Secret Manager.

        Requires: google-cloud-secret-manager, GCP credentials configured
        Secret name format: projects/PROJECT_ID/secrets/SECRET_NAME/versions/latest
        """
        try:
            from google.cloud import secretmanager
            from google.api_core.exceptions import NotFound
        except ImportError:
            raise ImportError(
                "google-cloud-secret-manager required for GCP Secret Manager. "
                "Install with: pip install 'story-playground[gcp]'"
            )

        if self._gcp_client is None:
            self._gcp_client = secretmanager.SecretManagerServiceClient()

        project_id = os.getenv("GCP_PROJECT_ID")
        if not project_id:
            raise ValueError("GCP_PROJECT_ID environment variable required for GCP backend")

        resource = secret_name
        if not resource.startswith("projects/"):
            resource = f"projects/{project_id}/secrets/{secret_name}/versions/latest"

        try:
            response = self._gcp_client.access_secret_version(name=resource)
        except NotFound:
            return None

        payload = response.payload.data.decode("UTF-8")
        return _unwrap_json_secret(secret_name, payload)

    def require_secret(self, secret_name: str) -> str:
        """
        Get a required secret, raising an error if not found.

        Raises:
            ValueError: If secret is not found or empty
        """
        secret = self.get_secret(secret_name)
        if not secret:
            raise ValueError(
                f"Required secret '{secret_name}' not found in {self.backend.value} backend"
            )
        return secret


def _unwrap_json_secret(secret_name: str, raw: str) -> str:
    """Return raw[secret_name] when raw is a JSON object holding that key, else raw."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return raw

    if isinstance(parsed, dict) and secret_name in parsed:
        return str(parsed[secret_name])
    return raw


# Global secret manager instance
_secret_manager: Optional[SecretManager] = None


def get_secret_manager() -> SecretManager:
    """Get the global secret manager instance."""
    global _secret_manager
    if _secret_manager is None:
        _secret_manager = SecretManager()
    return _secret_manager


def get_secret(secret_name: str, default: Optional[str] = None) -> Optional[str]:
    """Get a secret using the global secret manager."""
    return get_secret_manager().get_secret(secret_name, default)


def require_secret(secret_name: str) -> str:
    """
    Get a required secret using the global secret manager.

    Raises:
        ValueError: If secret is not found
    """
    return get_secret_manager().require_secret(secret_name)

"""
Vault Client for database credentials.

Reads the PostgreSQL credentials used to build a comparison DSN from a
HashiCorp Vault KV v2 secrets engine.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import hvac
from hvac.exceptions import InvalidPath, VaultError

logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """
    Vault reachability as seen by the client.

    Truthy when Vault is reachable, authenticated and unsealed.
    """

    healthy: bool
    authenticated: bool
    sealed: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.healthy


class VaultClient:
    """Thin wrapper over hvac for reading credential secrets."""

    def __init__(
        self,
        vault_url: Optional[str] = None,
        vault_token: Optional[str] = None,
        verify_ssl: bool = True,
        mount_point: str = "secret"
    ):
        """
        Connect and authenticate to Vault.

        Args:
            vault_url: Vault server URL (defaults to VAULT_ADDR env var)
            vault_token: Token (defaults to VAULT_TOKEN env var)
            verify_ssl: Whether to verify SSL certificates
            mount_point: KV v2 mount point

        Raises:
            ValueError: If the URL or token is missing
            VaultError: If Vault cannot be reached or rejects the token
        """
        self.vault_url = vault_url or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.mount_point = mount_point

        if not self.vault_url:
            raise ValueError("Vault URL must be provided via parameter or VAULT_ADDR environment variable")
        if not self.vault_token:
            raise ValueError("Vault token must be provided via parameter or VAULT_TOKEN environment variable")

        try:
            self.client = hvac.Client(url=self.vault_url, token=self.vault_token, verify=verify_ssl)
            authenticated = self.client.is_authenticated()
        except Exception as e:
            logger.error(f"Failed to initialize Vault client: {e}")
            raise VaultError(f"Vault initialization failed: {e}") from e

        if not authenticated:
            raise VaultError("Failed to authenticate with Vault")

        logger.info(f"Connected to Vault at {self.vault_url}")

    def get_secret(self, path: str) -> Dict[str, Any]:
        """
        Read the latest version of a KV secret.

        Args:
            path: Secret path relative to the mount point

        Returns:
            Secret key/value data

        Raises:
            InvalidPath: If nothing is stored at the path
            VaultError: If the read fails
        """
        try:
            logger.debug(f"Reading secret {self.mount_point}/data/{path}")
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point
            )
        except InvalidPath:
            logger.error(f"Secret not found at path: {path}")
            raise
        except Exception as e:
            logger.error(f"Failed to read secret {path}: {e}")
            raise VaultError(f"Secret retrieval failed: {e}") from e

        if not response or "data" not in response:
            raise InvalidPath(f"No data found at path: {path}")

        return response["data"].get("data", {})

    def get_database_credentials(self, path: str = "postgres-credentials") -> Dict[str, Any]:
        """
        Read PostgreSQL connection parameters.

        The secret is expected to hold ``host``, ``port``, ``database``,
        ``username`` and ``password``.

        Raises:
            VaultError: If the secret lacks a required key or cannot be read
        """
        credentials = self.get_secret(path)
        missing = [key for key in ("host", "database", "username") if key not in credentials]
        if missing:
            raise VaultError(f"Secret {path} is missing keys: {', '.join(missing)}")
        logger.info(f"Retrieved database credentials from {path}")
        return credentials

    def health_check(self) -> HealthStatus:
        """Report whether Vault is authenticated and unsealed."""
        try:
            if not self.client.is_authenticated():
                logger.warning("Vault authentication check failed")
                return HealthStatus(healthy=False, authenticated=False, sealed=True, error="Not authenticated")

            sealed = self.client.sys.read_health_status(method="GET").get("sealed", True)
        except Exception as e:
            logger.error(f"Vault health check failed: {e}")
            return HealthStatus(healthy=False, authenticated=False, sealed=True, error=str(e))

        if sealed:
            logger.warning("Vault is sealed")
        return HealthStatus(
            healthy=not sealed,
            authenticated=True,
            sealed=sealed,
            error="Vault is sealed" if sealed else None
        )

    def close(self):
        self.client = None
        logger.info("Vault client closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

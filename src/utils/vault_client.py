"""
HashiCorp Vault client for fetching database credentials

Fetches the origin and destination MySQL credentials from the KV v2
secrets engine, one secret per side of the sync.
"""

import os
import requests
from typing import Dict, Any, Optional
import logging
import re


logger = logging.getLogger(__name__)

DATABASE_ROLES = ("origin", "destination")
DEFAULT_MYSQL_PORT = 3306


SAFE_SECRET_PATH = re.compile(r'^[a-zA-Z0-9/_-]+$')


def validate_secret_path(secret_path: str) -> str:
    """Reject empty paths, traversal attempts and unexpected characters."""
    if not secret_path or not isinstance(secret_path, str):
        raise ValueError("secret_path must be a non-empty string")

    if '..' in secret_path or secret_path.startswith('//'):
        raise ValueError(
            f"Invalid secret_path: {secret_path}. "
            "Path traversal attempts are not allowed."
        )

    if not SAFE_SECRET_PATH.match(secret_path):
        raise ValueError(
            f"Invalid secret_path: {secret_path}. "
            "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
        )

    return secret_path


def kv2_data_path(secret_path: str) -> str:
    """secret/database/origin -> secret/data/database/origin"""
    if "/data/" in secret_path:
        return secret_path
    mount, _, rest = secret_path.partition("/")
    return f"{mount}/data/{rest}" if rest else f"{mount}/data"


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    Reads MySQL credentials from the KV v2 secrets engine.
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: Request timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        # Remove trailing slash from vault_addr
        self.vault_addr = self.vault_addr.rstrip("/")

        # Setup headers
        self.headers = {
            "X-Vault-Token": self.vault_token,
            "Content-Type": "application/json"
        }

        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch secret from Vault KV v2 secrets engine

        Args:
            secret_path: Path to secret (e.g., "secret/database/origin")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If secret_path is invalid or holds no data
            requests.RequestException: If Vault request fails
        """
        api_path = kv2_data_path(validate_secret_path(secret_path))
        url = f"{self.vault_addr}/v1/{api_path}"

        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {api_path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})

        if not secret_data:
            raise ValueError(f"No data found in secret at path: {api_path}")

        return secret_data

    def get_database_credentials(self, role: str) -> Dict[str, Any]:
        """
        Fetch MySQL credentials for one side of the sync

        Args:
            role: "origin" or "destination"

        Returns:
            Dictionary containing host, port, database, username, password

        Raises:
            ValueError: If role is invalid or credentials not found
        """
        if not role or not isinstance(role, str):
            raise ValueError("role must be a non-empty string")

        if role not in DATABASE_ROLES:
            raise ValueError(
                f"Unsupported role: {role}. "
                f"Must be one of: {', '.join(DATABASE_ROLES)}."
            )

        secret_path = f"secret/database/{role}"

        secret_data = self.get_secret(secret_path)

        required_fields = ["host", "database", "username", "password"]
        missing_fields = [
            field for field in required_fields if field not in secret_data
        ]

        if missing_fields:
            raise ValueError(
                f"Missing required fields in secret: {', '.join(missing_fields)}"
            )

        if "port" not in secret_data:
            secret_data["port"] = DEFAULT_MYSQL_PORT

        logger.info(f"Successfully fetched {role} credentials from Vault")

        return secret_data

    def health_check(self) -> bool:
        """
        Check if Vault is accessible and healthy

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"

        try:
            response = requests.get(url, timeout=5)
            # 200 active, 429 standby, 472 DR secondary, 473 performance standby
            return response.status_code in [200, 429, 472, 473]
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False


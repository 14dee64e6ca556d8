"""
Credential resolution for the CLI.

Endpoint settings come from Vault (--use-vault) or from command-line options
with environment variable fallbacks.
"""

import argparse
import logging
import os
import sys

from utils.vault_client import VaultClient

from ..config import EndpointConfig

logger = logging.getLogger(__name__)

ROLES = ("origin", "destination")


def endpoint_from_vault(vault_client: VaultClient, role: str) -> EndpointConfig:
    creds = vault_client.get_database_credentials(role)
    return EndpointConfig(
        host=creds["host"],
        port=int(creds["port"]),
        user=creds["username"],
        password=creds["password"],
        database=creds["database"],
    )


def endpoint_from_args(args: argparse.Namespace, role: str) -> EndpointConfig:
    """
    Build one endpoint from --<role>-* options, falling back to
    <ROLE>_MYSQL_* environment variables.

    Exits with status 1 when the password or database is missing.
    """
    env_prefix = f"{role.upper()}_MYSQL"

    def option(name: str, default: str | None = None) -> str | None:
        value = getattr(args, f"{role}_{name}", None)
        if value is None:
            value = os.getenv(f"{env_prefix}_{name.upper()}", default)
        return value

    password = option("password")
    database = option("database")

    if not password:
        logger.error(f"{role.capitalize()} database password not provided")
        sys.exit(1)
    if not database:
        logger.error(f"{role.capitalize()} database name not provided")
        sys.exit(1)

    return EndpointConfig(
        host=option("host", "localhost"),
        port=int(option("port", "3306")),
        user=option("user", "root"),
        password=password,
        database=database,
    )


def get_credentials_from_vault_or_env(
    args: argparse.Namespace,
) -> tuple[EndpointConfig, EndpointConfig]:
    """
    Resolve origin and destination endpoint settings

    Args:
        args: Parsed command-line arguments

    Returns:
        Tuple of (origin, destination)
    """
    if args.use_vault:
        try:
            vault_client = VaultClient()
            if not vault_client.health_check():
                raise RuntimeError(f"Vault at {vault_client.vault_addr} is sealed or unreachable")
            origin, destination = (endpoint_from_vault(vault_client, role) for role in ROLES)
        except Exception as e:
            logger.error(f"Failed to fetch credentials from Vault: {e}")
            sys.exit(1)
        logger.info("Successfully fetched credentials from Vault")
        return origin, destination

    return endpoint_from_args(args, "origin"), endpoint_from_args(args, "destination")

"""
Shared utilities for the sync tool

Provides:
- db: MySQL endpoint with introspection, streaming reads and prepared statements
- logging: Console/JSON logging setup
- metrics: Prometheus metrics publishing
- tracing: OpenTelemetry spans
- sql_safety: Identifier validation and quoting
- vault_client: HashiCorp Vault integration for secrets management
"""

__version__ = "1.0.0"
__all__ = ["db", "logging", "metrics", "tracing", "sql_safety", "vault_client"]

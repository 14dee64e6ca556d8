"""
Metrics publishing.

Either serve the registry over HTTP for the duration of a run, or write it to
a node-exporter textfile once the run is over.
"""

import logging
from typing import Optional

from prometheus_client import (
    start_http_server,
    write_to_textfile,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """
    Starts an HTTP server that exposes metrics on /metrics endpoint.
    """

    def __init__(
        self,
        port: int = 9091,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize metrics publisher

        Args:
            port: Port to expose metrics on (default: 9091)
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """Start the metrics HTTP server"""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
            self._server_started = True
            logger.info(f"Metrics server started on port {self.port}")
        except OSError as e:
            if "Address already in use" in str(e):
                logger.error(f"Port {self.port} already in use, metrics server cannot start")
                raise RuntimeError(
                    f"Metrics server port {self.port} is already in use. "
                    f"Stop the conflicting process or use a different port."
                ) from e
            raise

    def is_started(self) -> bool:
        """Check if metrics server is running"""
        return self._server_started


def write_metrics_textfile(
    path: str,
    registry: Optional[CollectorRegistry] = None,
) -> None:
    """
    Write the registry in the text exposition format.

    The file is written to a temporary name and renamed, so a collector never
    reads a partial file.

    Args:
        path: Target file, usually in the node-exporter textfile directory
        registry: Registry to write (default: global REGISTRY)
    """
    write_to_textfile(path, registry or REGISTRY)
    logger.info(f"Wrote metrics to {path}")

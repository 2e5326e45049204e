"""Prometheus scrape endpoint for recorded views.

Serves the collector's registry in the Prometheus text format from a
daemon thread, optionally behind HTTP Basic authentication.
"""

import base64
import binascii
import hmac
import logging
import threading
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlsplit

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from mongoapm.observability.config import MetricsConfig

logger = logging.getLogger(__name__)

BIND_ADDRESS = "0.0.0.0"


def check_basic_auth(header: Optional[str], username: str, password: str) -> bool:
    """Validate an ``Authorization`` header against the expected credentials.

    Malformed headers are treated as wrong credentials.
    """
    if not header:
        return False
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "basic":
        return False
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    given_user, sep, given_password = decoded.partition(":")
    if not sep:
        return False
    return hmac.compare_digest(given_user, username) and hmac.compare_digest(
        given_password, password
    )


class MetricsHTTPHandler(BaseHTTPRequestHandler):
    """Answers scrapes of the configured metrics path."""

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry, *args, **kwargs):
        self.metrics_config = config
        self.registry = registry
        super().__init__(*args, **kwargs)

    def do_GET(self) -> None:
        config = self.metrics_config
        if urlsplit(self.path).path != config.path:
            self.send_error(404, "Not Found")
            return

        if config.auth_username and config.auth_password and not check_basic_auth(
            self.headers.get("Authorization"), config.auth_username, config.auth_password
        ):
            self.send_response(401)
            self.send_header("WWW-Authenticate", 'Basic realm="Metrics"')
            self.end_headers()
            self.wfile.write(b"Unauthorized")
            return

        try:
            body = generate_latest(self.registry)
        except Exception:
            logger.exception("Failed to render metrics")
            self.send_error(500, "Internal Server Error")
            return

        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE_LATEST)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class MetricsServer:
    """Background HTTP server for the scrape endpoint.

    Example:
        >>> server = MetricsServer(MetricsConfig(port=9464), registry)
        >>> server.start()
        >>> server.url
        'http://0.0.0.0:9464/metrics'
        >>> server.shutdown()
    """

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry):
        self.config = config
        self.registry = registry
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Bind the port and serve scrapes in a daemon thread.

        Raises:
            OSError: If the port cannot be bound.
        """
        if self._httpd is not None:
            logger.warning("Metrics server already running")
            return

        handler = partial(MetricsHTTPHandler, self.config, self.registry)
        try:
            httpd = ThreadingHTTPServer((BIND_ADDRESS, self.config.port), handler)
        except OSError as e:
            logger.error("Cannot bind metrics endpoint on port %d: %s", self.config.port, e)
            raise

        self._httpd = httpd
        self._thread = threading.Thread(
            target=httpd.serve_forever, daemon=True, name="mongoapm-metrics"
        )
        self._thread.start()
        logger.info("Serving metrics at %s", self.url)

    def shutdown(self) -> None:
        """Stop serving and release the port."""
        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return

        httpd.shutdown()
        httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Metrics endpoint on port %d closed", self.config.port)

    @property
    def is_running(self) -> bool:
        return self._httpd is not None

    @property
    def url(self) -> str:
        """Full URL of the metrics endpoint."""
        return f"http://{BIND_ADDRESS}:{self.config.port}{self.config.path}"

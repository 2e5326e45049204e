"""Integration tests for the Prometheus metrics endpoint."""

import base64
import urllib.error
import urllib.request

import pytest

from mongoapm.observability.metrics.collector import MetricsCollector
from mongoapm.observability.metrics.measures import TagSet
from mongoapm.observability.metrics.server import MetricsServer, check_basic_auth
from mongoapm.observability.metrics.views import default_views


def _get(url, headers=None):
    request = urllib.request.Request(url, headers=headers or {})
    return urllib.request.urlopen(request, timeout=5)


@pytest.fixture
def running_collector(metrics_config, isolated_registry, measures):
    collector = MetricsCollector(metrics_config, registry=isolated_registry)
    collector.register_views(default_views(measures))
    collector.start()
    yield collector
    collector.shutdown()


class TestMetricsEndpoint:
    """Tests for scraping the exposition endpoint."""

    def test_serves_recorded_views(self, running_collector, metrics_config, measures):
        running_collector.record(
            {measures.roundtrip_latency: 2.5, measures.errors: 1},
            TagSet(driver="python", server_version="4.0.9", server_type="STANDALONE", command="find"),
        )

        with _get(f"http://127.0.0.1:{metrics_config.port}/metrics") as response:
            assert response.status == 200
            assert response.headers["Content-Type"].startswith("text/plain")
            body = response.read().decode()

        assert 'mongo_client_roundtrip_latency_count{command="find"} 1.0' in body
        assert (
            'mongo_client_errors_total{driver="python",server_version="4.0.9",'
            'server_type="STANDALONE",command="find"} 1.0'
        ) in body
        assert "# HELP mongo_client_bytes_read The number of bytes read back from the server" in body

    def test_unknown_path_returns_404(self, running_collector, metrics_config):
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(f"http://127.0.0.1:{metrics_config.port}/other")
        assert exc_info.value.code == 404

    def test_query_string_ignored(self, running_collector, metrics_config):
        with _get(f"http://127.0.0.1:{metrics_config.port}/metrics?format=text") as response:
            assert response.status == 200


class TestMetricsAuth:
    """Tests for HTTP Basic authentication."""

    @pytest.fixture
    def server(self, metrics_config_with_auth, isolated_registry):
        server = MetricsServer(metrics_config_with_auth, isolated_registry)
        server.start()
        yield server
        server.shutdown()

    def test_missing_credentials(self, server, metrics_config_with_auth):
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(f"http://127.0.0.1:{metrics_config_with_auth.port}/metrics")
        assert exc_info.value.code == 401
        assert exc_info.value.headers["WWW-Authenticate"] == 'Basic realm="Metrics"'

    def test_wrong_credentials(self, server, metrics_config_with_auth):
        token = base64.b64encode(b"test_user:wrong").decode()
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(
                f"http://127.0.0.1:{metrics_config_with_auth.port}/metrics",
                {"Authorization": f"Basic {token}"},
            )
        assert exc_info.value.code == 401

    def test_malformed_credentials(self, server, metrics_config_with_auth):
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(
                f"http://127.0.0.1:{metrics_config_with_auth.port}/metrics",
                {"Authorization": "Basic !!!not-base64"},
            )
        assert exc_info.value.code == 401

    def test_valid_credentials(self, server, metrics_config_with_auth):
        token = base64.b64encode(b"test_user:test_pass").decode()
        with _get(
            f"http://127.0.0.1:{metrics_config_with_auth.port}/metrics",
            {"Authorization": f"Basic {token}"},
        ) as response:
            assert response.status == 200


class TestMetricsServerLifecycle:
    """Tests for MetricsServer start/shutdown."""

    def test_start_and_shutdown(self, metrics_config, isolated_registry):
        server = MetricsServer(metrics_config, isolated_registry)
        server.start()
        try:
            assert server.is_running is True
            assert server.url == f"http://0.0.0.0:{metrics_config.port}/metrics"
        finally:
            server.shutdown()
        assert server.is_running is False

    def test_shutdown_not_started(self, metrics_config, isolated_registry):
        server = MetricsServer(metrics_config, isolated_registry)
        server.shutdown()
        assert server.is_running is False

    def test_port_in_use(self, metrics_config, isolated_registry):
        first = MetricsServer(metrics_config, isolated_registry)
        first.start()
        try:
            second = MetricsServer(metrics_config, isolated_registry)
            with pytest.raises(OSError):
                second.start()
        finally:
            first.shutdown()


class TestCheckBasicAuth:
    """Tests for Authorization header validation."""

    @staticmethod
    def header(credentials):
        return "Basic " + base64.b64encode(credentials).decode()

    def test_valid(self):
        assert check_basic_auth(self.header(b"user:pa:ss"), "user", "pa:ss") is True

    @pytest.mark.parametrize(
        "value",
        [
            None,
            "",
            "Bearer abc",
            "Basic",
            "Basic !!!",
            "Basic " + base64.b64encode(b"no-separator").decode(),
            "Basic " + base64.b64encode(b"\xff\xfe:x").decode(),
        ],
    )
    def test_rejected(self, value):
        assert check_basic_auth(value, "user", "secret") is False

    def test_wrong_password(self):
        assert check_basic_auth(self.header(b"user:nope"), "user", "secret") is False

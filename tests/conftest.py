"""
Pytest configuration and fixtures for mongoapm tests.

This module provides shared fixtures for building command events and
isolated metrics collectors, plus the ``mongodb`` marker for tests that
need a live server.
"""

import os

import pytest
from prometheus_client import CollectorRegistry

from mongoapm.monitoring.events import (
    CommandFailedEvent,
    CommandStartedEvent,
    CommandSucceededEvent,
    ConnectionDescription,
)
from mongoapm.observability.config import MetricsConfig
from mongoapm.observability.metrics.collector import MetricsCollector
from mongoapm.observability.metrics.measures import MongoMeasures


# ============================================================================
# Command Event Factories
# ============================================================================

@pytest.fixture
def connection():
    """
    Connection to a 4.0.9 standalone server.

    Returns:
        ConnectionDescription for localhost:27017
    """
    return ConnectionDescription(
        connection_id="localhost:27017",
        server_type="STANDALONE",
        server_version=(4, 0, 9),
    )


@pytest.fixture
def started_event(connection):
    """Factory for CommandStartedEvent with overridable fields."""
    def _make(**overrides):
        fields = dict(
            command_name="find",
            database_name="media-searches",
            request_id=7,
            connection=connection,
            command={"find": "youtube_searches", "filter": {"key": "golang"}, "$db": "media-searches"},
        )
        fields.update(overrides)
        return CommandStartedEvent(**fields)
    return _make


@pytest.fixture
def succeeded_event(connection):
    """Factory for CommandSucceededEvent with overridable fields."""
    def _make(**overrides):
        fields = dict(
            command_name="find",
            database_name="media-searches",
            request_id=7,
            connection=connection,
            elapsed_ns=2_500_000,
            reply={"cursor": {"firstBatch": [], "id": 0}, "ok": 1.0},
        )
        fields.update(overrides)
        return CommandSucceededEvent(**fields)
    return _make


@pytest.fixture
def failed_event(connection):
    """Factory for CommandFailedEvent with overridable fields."""
    def _make(**overrides):
        fields = dict(
            command_name="find",
            database_name="media-searches",
            request_id=7,
            connection=connection,
            elapsed_ns=1_500_000,
            failure={"ok": 0.0, "errmsg": "timeout", "code": 50},
        )
        fields.update(overrides)
        return CommandFailedEvent(**fields)
    return _make


# ============================================================================
# Metrics Fixtures
# ============================================================================

@pytest.fixture
def isolated_registry():
    """
    Fresh Prometheus CollectorRegistry shared with no other test.
    """
    return CollectorRegistry()


@pytest.fixture
def measures():
    """
    Default measures and tag keys.
    """
    return MongoMeasures()


@pytest.fixture
def collector(isolated_registry):
    """
    MetricsCollector on an isolated registry, HTTP server not started.
    """
    return MetricsCollector(MetricsConfig(enabled=False), registry=isolated_registry)


# ============================================================================
# Pytest Markers
# ============================================================================

def pytest_configure(config):
    """
    Register custom pytest markers.
    """
    config.addinivalue_line(
        "markers", "mongodb: Tests requiring a running MongoDB server"
    )


def pytest_collection_modifyitems(config, items):
    """
    Skip tests that need a MongoDB server unless explicitly enabled.
    """
    if config.getoption("--mongodb", default=False):
        return

    skip_mongodb = pytest.mark.skip(reason="MongoDB not available (use --mongodb to run)")
    for item in items:
        if "mongodb" in item.keywords:
            item.add_marker(skip_mongodb)


def pytest_addoption(parser):
    """
    Add custom command-line options for pytest.
    """
    parser.addoption(
        "--mongodb",
        action="store_true",
        default=False,
        help="Run tests that require a MongoDB server (MONGOAPM_TEST_URI)",
    )


@pytest.fixture
def mongodb_uri():
    """Connection string of the MongoDB server used by integration tests."""
    return os.environ.get("MONGOAPM_TEST_URI", "mongodb://localhost:27017")

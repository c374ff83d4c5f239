"""Shared pytest fixtures.

Every test runs with the webhook's environment variables cleared and the
package logger restored afterwards, so configuration and logging state never
leak between tests.
"""

import logging

import pytest

from ndots_webhook.logging_config import PACKAGE_LOGGER

CONFIG_ENV_VARS = [
    "PORT",
    "NDOTS_VALUE",
    "ANNOTATION_KEY",
    "ANNOTATION_MODE",
    "NAMESPACE_INCLUDE",
    "NAMESPACE_EXCLUDE",
    "TLS_CERT_PATH",
    "TLS_KEY_PATH",
    "TIMEOUT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "METRICS_PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove webhook settings from the environment."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo any init_logging() call made by a test."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate

"""
Pytest configuration and shared fixtures for appmodel tests.

This module provides common test fixtures and configuration for both
unit and integration tests.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env():
    """Run a test with no appmodel-related environment variables set."""
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture
def builder(clean_env):
    """Provide a run-mode application builder with an empty configuration."""
    from appmodel.builder import DistributedApplicationBuilder

    return DistributedApplicationBuilder()


@pytest.fixture
def publish_builder(clean_env):
    """Provide an application builder started with ``--publisher manifest``."""
    from appmodel.builder import DistributedApplicationBuilder

    return DistributedApplicationBuilder(["--publisher", "manifest"])


@pytest.fixture
def sample_apphost_yaml():
    """Provide a sample AppHost definition."""
    return """
parameters:
  pass:
    secret: true

resources:
  my-qdrant:
    type: qdrant
    api_key: pass

  cache:
    type: container
    image: redis
    tag: "7.2"
    endpoints:
      - name: tcp
        target_port: 6379
        scheme: tcp
        transport: tcp
    env:
      REDIS_ARGS: "--save 60 1"

  projecta:
    type: project
    path: ../ProjectA/ProjectA.csproj
    env:
      CACHE_URL:
        resource: cache
        endpoint: tcp
    references:
      - my-qdrant
"""


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark tests based on directory structure
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

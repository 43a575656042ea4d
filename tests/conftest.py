# Copyright 2025 Alibaba Group Holding Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Pytest configuration and fixtures for Browser Fleet tests.

This module provides shared fixtures and configuration for all test modules.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

TESTDATA_DIR = Path(__file__).resolve().parent / "testdata"
TEST_CONFIG_PATH = TESTDATA_DIR / "config.toml"
os.environ.setdefault("BROWSER_FLEET_CONFIG_PATH", str(TEST_CONFIG_PATH))

# Prevent real Docker connections during tests by mocking docker.from_env
import docker  # noqa: E402

_real_from_env = docker.from_env
_mock_docker_client = MagicMock()
docker.from_env = lambda: _mock_docker_client  # type: ignore

from browserfleet.api.schema import Browser, Caps, Environment, ServiceBase  # noqa: E402
from browserfleet.main import app  # noqa: E402
from browserfleet.services.network import NetworkSnapshot  # noqa: E402
from browserfleet.services.readiness import ReadinessProbe  # noqa: E402
from browserfleet.services.runtime import ContainerRuntime  # noqa: E402


@pytest.fixture(scope="function")
def client() -> TestClient:
    """
    Fixture providing a FastAPI test client.
    """
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def chrome() -> Browser:
    return Browser(image="browsers/chrome:100", port="4444", vnc="5900")


@pytest.fixture
def service_base(chrome: Browser) -> ServiceBase:
    return ServiceBase(request_id="req-1", service=chrome, startup_timeout=30)


@pytest.fixture
def bare_host() -> Environment:
    return Environment(in_docker=False, time_zone="UTC")


@pytest.fixture
def vnc_caps() -> Caps:
    return Caps(enableVNC="true", screenResolution="1920x1080x24")


@pytest.fixture
def runtime() -> MagicMock:
    """
    Container runtime double that creates container "cid" and reports both
    ports published on the host.
    """
    mock_runtime = MagicMock(spec=ContainerRuntime)
    mock_runtime.create.return_value = "cid"
    mock_runtime.inspect.return_value = NetworkSnapshot(
        ports={
            "4444/tcp": [{"HostIp": "0.0.0.0", "HostPort": "32768"}],
            "5900/tcp": [{"HostIp": "0.0.0.0", "HostPort": "32769"}],
        },
        ip_address="172.17.0.5",
        networks={"bridge": "172.17.0.5"},
    )
    return mock_runtime


@pytest.fixture
def probe() -> MagicMock:
    return MagicMock(spec=ReadinessProbe)


@pytest.fixture(scope="function")
def docker_runtime():
    """
    Fixture providing a DockerRuntime connected to the real daemon.

    Only for tests marked with @pytest.mark.integration; skips when no
    daemon is reachable.
    """
    from docker.errors import DockerException

    from browserfleet.services.docker import DockerRuntime

    try:
        docker_client = _real_from_env()
        docker_client.ping()
    except DockerException as exc:
        pytest.skip(f"Docker daemon unavailable: {exc}")
    yield DockerRuntime(docker_client=docker_client)
    docker_client.close()

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
Integration tests for worker provisioning.

These tests require Docker to be running and create actual containers.
They are marked as integration tests and can be skipped during normal test runs.
"""

import pytest
import requests
from docker.errors import DockerException, NotFound

from browserfleet.api.schema import Browser, Caps, Environment, ServiceBase
from browserfleet.services.worker_service import WorkerService

IMAGE = "nginx:alpine"


@pytest.fixture
def web_service(docker_runtime) -> ServiceBase:
    try:
        docker_runtime.docker_client.images.pull(IMAGE)
    except DockerException as exc:
        pytest.skip(f"Unable to pull {IMAGE}: {exc}")
    return ServiceBase(
        request_id="integration",
        service=Browser(image=IMAGE, port="80"),
        startup_timeout=30,
    )


@pytest.mark.integration
class TestWorkerIntegration:
    """Provision a real container and tear it down again."""

    def test_start_worker_and_cancel(self, docker_runtime, web_service):
        service = WorkerService(runtime=docker_runtime, environment=Environment(network="bridge"))

        worker = service.start_worker(web_service, Caps())
        try:
            assert worker.address.startswith("http://127.0.0.1:")
            assert worker.vnc_address is None
            assert requests.get(worker.address, timeout=5).status_code == 200
        finally:
            worker.cancel()

        with pytest.raises(NotFound):
            docker_runtime.docker_client.api.inspect_container(worker.worker_id)

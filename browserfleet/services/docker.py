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
Docker-based implementation of ContainerRuntime.

This module talks to the Docker daemon through the low-level docker-py API
client to create, start, inspect and remove browser worker containers.
"""

from __future__ import annotations

import inspect
import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

import docker
from docker.errors import DockerException
from docker.types import LogConfig
from fastapi import HTTPException, status

from browserfleet.services.constants import WorkerErrorCodes
from browserfleet.services.network import NetworkSnapshot
from browserfleet.services.runtime import ContainerRuntime, ContainerSpec

logger = logging.getLogger(__name__)


def _resolve_docker_timeout(default: int = 180) -> int:
    env_value = os.environ.get("DOCKER_API_TIMEOUT")
    if not env_value:
        return default
    try:
        timeout = int(env_value)
        if timeout <= 0:
            raise ValueError
        return timeout
    except ValueError:
        logger.warning("Invalid DOCKER_API_TIMEOUT='%s'; falling back to %s seconds.", env_value, default)
        return default


DOCKER_CLIENT_TIMEOUT = _resolve_docker_timeout()


class DockerRuntime(ContainerRuntime):
    """
    Docker-based implementation of ContainerRuntime.

    The docker-py client is thread safe for the calls made here, so a single
    instance is shared by every provisioning request.
    """

    def __init__(self, docker_client: Optional[Any] = None):
        """
        Initialize the Docker runtime.

        Without an explicit client the runtime connects from environment
        variables:
        - DOCKER_HOST: Docker daemon URL (e.g., 'unix://var/run/docker.sock' or 'tcp://127.0.0.1:2376')
        - DOCKER_TLS_VERIFY / DOCKER_CERT_PATH: TLS settings
        - DOCKER_API_TIMEOUT: API timeout in seconds

        Note: Connection is not verified at initialization time.
        """
        if docker_client is not None:
            self.docker_client = docker_client
            return
        try:
            client_kwargs = {}
            try:
                signature = inspect.signature(docker.from_env)
                if "timeout" in signature.parameters:
                    client_kwargs["timeout"] = DOCKER_CLIENT_TIMEOUT
            except (ValueError, TypeError):
                logger.debug("Unable to introspect docker.from_env signature; using default parameters.")
            self.docker_client = docker.from_env(**client_kwargs)
            logger.info("Docker runtime initialized from environment")
        except Exception as e:  # noqa: BLE001
            hint = ""
            msg = str(e)
            if isinstance(e, FileNotFoundError) or "No such file or directory" in msg:
                docker_host = os.environ.get("DOCKER_HOST", "")
                hint = (
                    " Docker daemon seems unavailable (unix socket not found). "
                    "Make sure the Docker daemon is running and DOCKER_HOST points at its socket. "
                    f"(current DOCKER_HOST='{docker_host}')"
                )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={
                    "code": WorkerErrorCodes.DOCKER_INITIALIZATION_ERROR,
                    "message": f"Failed to initialize Docker runtime: {str(e)}.{hint}",
                },
            )

    @contextmanager
    def _docker_operation(self, action: str, container_id: Optional[str] = None):
        """Context manager to log duration for Docker API calls."""
        op_id = container_id or "new"
        start = time.perf_counter()
        try:
            yield
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                "container=%s | action=%s | duration=%.2f | error=%s",
                op_id,
                action,
                elapsed_ms,
                exc,
            )
            raise
        else:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug(
                "container=%s | action=%s | duration=%.2f",
                op_id,
                action,
                elapsed_ms,
            )

    @staticmethod
    def _host_config_kwargs(spec: ContainerSpec) -> Dict[str, Any]:
        host_config_kwargs: Dict[str, Any] = {
            "binds": list(spec.binds),
            "auto_remove": spec.auto_remove,
            "port_bindings": dict(spec.port_bindings),
            "network_mode": spec.network_mode,
            "shm_size": spec.shm_size,
            "privileged": spec.privileged,
            "extra_hosts": list(spec.extra_hosts),
        }
        if spec.log_config is not None:
            host_config_kwargs["log_config"] = LogConfig(
                type=spec.log_config.type,
                config=dict(spec.log_config.config),
            )
        if spec.tmpfs:
            host_config_kwargs["tmpfs"] = dict(spec.tmpfs)
        if spec.memory:
            host_config_kwargs["mem_limit"] = spec.memory
        if spec.nano_cpus:
            host_config_kwargs["nano_cpus"] = spec.nano_cpus
        if spec.links:
            host_config_kwargs["links"] = list(spec.links)
        return host_config_kwargs

    def create(self, spec: ContainerSpec) -> str:
        api = self.docker_client.api
        host_config = api.create_host_config(**self._host_config_kwargs(spec))
        with self._docker_operation(f"create container from {spec.image}"):
            response = api.create_container(
                image=spec.image,
                hostname=spec.hostname,
                environment=spec.environment,
                ports=spec.exposed_ports,
                host_config=host_config,
            )
        container_id = (response or {}).get("Id")
        if not container_id:
            raise DockerException("Docker did not return a container ID.")
        return container_id

    def start(self, container_id: str) -> None:
        with self._docker_operation("start container", container_id):
            self.docker_client.api.start(container_id)

    def inspect(self, container_id: str) -> NetworkSnapshot:
        with self._docker_operation("inspect container", container_id):
            attrs = self.docker_client.api.inspect_container(container_id)
        return NetworkSnapshot.from_inspect(attrs or {})

    def remove(self, container_id: str) -> None:
        with self._docker_operation("remove container", container_id):
            self.docker_client.api.remove_container(container_id, v=True, force=True)

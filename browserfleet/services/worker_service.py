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
Worker lifecycle management.

This module drives one browser worker from nothing to a ready service:
create, start, inspect, resolve its address and wait for it to respond.
Once the container exists, any failure removes it before the error is
raised to the caller.
"""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

import requests
from docker.errors import DockerException
from fastapi import HTTPException, status

from browserfleet.api.schema import Caps, Environment, ServiceBase
from browserfleet.services.constants import WorkerErrorCodes, WorkerEvents
from browserfleet.services.network import resolve_addresses
from browserfleet.services.ports import PortPlan, build_port_plan
from browserfleet.services.readiness import HttpReadinessProbe, ReadinessProbe
from browserfleet.services.runtime import ContainerRuntime, ContainerSpec
from browserfleet.services.runtime_config import (
    build_env,
    get_container_hostname,
    get_extra_hosts,
    get_links,
    get_shm_size,
)

logger = logging.getLogger(__name__)

# docker-py surfaces transport failures as requests errors.
_RUNTIME_ERRORS = (DockerException, requests.RequestException)


@dataclass
class StartedWorker:
    """Handle of a ready worker, owned by the caller."""

    address: str
    worker_id: str
    vnc_address: Optional[str]
    cancel: Callable[[], None]


class _OneShotRemoval:
    """Removes a worker at most once, however many times it is invoked."""

    def __init__(self, remove: Callable[[str, str], None], request_id: str, worker_id: str):
        self._remove = remove
        self._request_id = request_id
        self._worker_id = worker_id
        self._lock = Lock()
        self._done = False

    def __call__(self) -> None:
        with self._lock:
            if self._done:
                return
            self._done = True
        self._remove(self._request_id, self._worker_id)


class WorkerService:
    """
    Provisions browser workers on a container runtime.

    The service keeps no per-request state and may be shared by concurrent
    request handlers.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        environment: Environment,
        probe: Optional[ReadinessProbe] = None,
    ):
        self.runtime = runtime
        self.environment = environment
        self.probe = probe or HttpReadinessProbe()

    def start_worker(self, service_base: ServiceBase, caps: Caps) -> StartedWorker:
        """
        Launch a worker and wait until its service responds.

        Args:
            service_base: Per-request context with the browser definition
            caps: Requested capabilities

        Returns:
            StartedWorker: Address, ID and cancellation handle of the worker

        Raises:
            HTTPException: If configuration is invalid (400), the container
                cannot be created, started or inspected (500), or the
                service does not become ready in time (504)
        """
        request_id = service_base.request_id
        image = service_base.service.image
        try:
            plan = build_port_plan(service_base.service, caps, self.environment)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": WorkerErrorCodes.INVALID_PORT_SPEC,
                    "message": f"Failed to configure ports for {image}: {str(exc)}",
                },
            ) from exc
        spec = self._build_container_spec(service_base, caps, plan)

        logger.info(
            "request=%s | event=%s | image=%s",
            request_id,
            WorkerEvents.CREATING_CONTAINER,
            image,
        )
        try:
            worker_id = self.runtime.create(spec)
        except _RUNTIME_ERRORS as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "code": WorkerErrorCodes.CONTAINER_CREATE_FAILED,
                    "message": f"Failed to create container from {image}: {str(exc)}",
                },
            ) from exc

        removal = _OneShotRemoval(self._remove_container, request_id, worker_id)
        with ExitStack() as rollback:
            rollback.callback(removal)
            worker = self._bring_up(service_base, plan, worker_id, removal)
            rollback.pop_all()
        return worker

    def _build_container_spec(
        self,
        service_base: ServiceBase,
        caps: Caps,
        plan: PortPlan,
    ) -> ContainerSpec:
        service = service_base.service
        return ContainerSpec(
            image=service.image,
            hostname=get_container_hostname(caps),
            environment=build_env(service_base, caps, self.environment),
            exposed_ports=plan.exposed_ports,
            port_bindings=plan.port_bindings,
            binds=list(service.volumes),
            tmpfs=dict(service.tmpfs),
            network_mode=self.environment.network,
            shm_size=get_shm_size(service),
            privileged=True,
            memory=self.environment.memory,
            nano_cpus=self.environment.nano_cpus,
            extra_hosts=get_extra_hosts(service, caps),
            links=get_links(service_base),
            log_config=self.environment.log_config,
            auto_remove=False,
        )

    def _bring_up(
        self,
        service_base: ServiceBase,
        plan: PortPlan,
        worker_id: str,
        removal: _OneShotRemoval,
    ) -> StartedWorker:
        request_id = service_base.request_id
        service = service_base.service

        logger.info(
            "request=%s | event=%s | image=%s | container=%s",
            request_id,
            WorkerEvents.STARTING_CONTAINER,
            service.image,
            worker_id,
        )
        container_start = time.perf_counter()
        try:
            self.runtime.start(worker_id)
        except _RUNTIME_ERRORS as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "code": WorkerErrorCodes.CONTAINER_START_FAILED,
                    "message": f"Failed to start container {worker_id}: {str(exc)}",
                },
            ) from exc
        logger.info(
            "request=%s | event=%s | image=%s | container=%s | duration=%.2f",
            request_id,
            WorkerEvents.CONTAINER_STARTED,
            service.image,
            worker_id,
            (time.perf_counter() - container_start) * 1000,
        )

        try:
            snapshot = self.runtime.inspect(worker_id)
        except _RUNTIME_ERRORS as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "code": WorkerErrorCodes.CONTAINER_INSPECT_FAILED,
                    "message": f"Failed to inspect container {worker_id}: {str(exc)}",
                },
            ) from exc
        if not snapshot.has_port(plan.primary):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "code": WorkerErrorCodes.PORT_BINDING_UNAVAILABLE,
                    "message": f"No bindings available for {plan.primary} on container {worker_id}",
                },
            )
        try:
            address, vnc_address = resolve_addresses(self.environment, snapshot, plan)
        except LookupError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "code": WorkerErrorCodes.PORT_BINDING_UNAVAILABLE,
                    "message": f"Failed to resolve address of container {worker_id}: {str(exc)}",
                },
            ) from exc

        url = f"http://{address}{_normalize_path(service.path)}"
        service_start = time.perf_counter()
        try:
            self.probe.wait(url, service_base.startup_timeout)
        except Exception as exc:  # noqa: BLE001
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail={
                    "code": WorkerErrorCodes.SERVICE_STARTUP_TIMEOUT,
                    "message": f"Service in container {worker_id} is not ready at {url}: {str(exc)}",
                },
            ) from exc
        logger.info(
            "request=%s | event=%s | image=%s | container=%s | duration=%.2f",
            request_id,
            WorkerEvents.SERVICE_STARTED,
            service.image,
            worker_id,
            (time.perf_counter() - service_start) * 1000,
        )
        logger.info(
            "request=%s | event=%s | image=%s | container=%s | url=%s",
            request_id,
            WorkerEvents.PROXY_TO,
            service.image,
            worker_id,
            url,
        )
        return StartedWorker(
            address=url,
            worker_id=worker_id,
            vnc_address=vnc_address,
            cancel=removal,
        )

    def _remove_container(self, request_id: str, worker_id: str) -> None:
        """Best-effort removal; failures are logged and never raised."""
        logger.info(
            "request=%s | event=%s | container=%s",
            request_id,
            WorkerEvents.REMOVE_CONTAINER,
            worker_id,
        )
        try:
            self.runtime.remove(worker_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "request=%s | event=%s | container=%s | error=%s",
                request_id,
                WorkerEvents.FAILED_TO_REMOVE_CONTAINER,
                worker_id,
                exc,
            )
            return
        logger.info(
            "request=%s | event=%s | container=%s",
            request_id,
            WorkerEvents.CONTAINER_REMOVED,
            worker_id,
        )


def _normalize_path(path: Optional[str]) -> str:
    if not path:
        return "/"
    if not path.startswith("/"):
        return "/" + path
    return path


__all__ = [
    "StartedWorker",
    "WorkerService",
]

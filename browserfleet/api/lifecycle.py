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
Worker lifecycle routes.

Endpoints are synchronous: FastAPI runs them in its thread pool, so one
blocking provisioning sequence runs per inbound request.
"""

import logging
from threading import Lock
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Response, status

from browserfleet.api.schema import (
    ErrorResponse,
    ServiceBase,
    StartWorkerRequest,
    StartWorkerResponse,
)
from browserfleet.config import get_config
from browserfleet.services.catalog import BrowserCatalog
from browserfleet.services.constants import WorkerErrorCodes
from browserfleet.services.docker import DockerRuntime
from browserfleet.services.registry import WorkerRegistry
from browserfleet.services.worker_service import WorkerService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workers"])

_lock = Lock()
_worker_service: Optional[WorkerService] = None
_catalog: Optional[BrowserCatalog] = None
_registry = WorkerRegistry()


def get_worker_service() -> WorkerService:
    global _worker_service
    with _lock:
        if _worker_service is None:
            _worker_service = WorkerService(
                runtime=DockerRuntime(),
                environment=get_config().to_environment(),
            )
        return _worker_service


def get_catalog() -> BrowserCatalog:
    global _catalog
    with _lock:
        if _catalog is None:
            _catalog = BrowserCatalog.from_file(get_config().catalog.browsers_path)
        return _catalog


def get_registry() -> WorkerRegistry:
    return _registry


@router.post(
    "/workers",
    response_model=StartWorkerResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
def start_worker(
    request: StartWorkerRequest,
    service: WorkerService = Depends(get_worker_service),
    catalog: BrowserCatalog = Depends(get_catalog),
    registry: WorkerRegistry = Depends(get_registry),
) -> StartWorkerResponse:
    """
    Launch a browser worker and return its address once it responds.
    """
    found = catalog.find(request.browser_name, request.version)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": WorkerErrorCodes.BROWSER_NOT_FOUND,
                "message": f"Browser {request.browser_name} {request.version or '(default)'} is not configured.",
            },
        )
    browser, version = found
    service_base = ServiceBase(
        request_id=uuid4().hex,
        service=browser,
        application_containers=request.application_containers,
        startup_timeout=get_config().docker.startup_timeout,
    )
    logger.info(
        "request=%s | browser=%s | version=%s",
        service_base.request_id,
        request.browser_name,
        version,
    )
    worker = service.start_worker(service_base, request.caps)
    registry.add(worker)
    return StartWorkerResponse(
        id=worker.worker_id,
        address=worker.address,
        vnc_address=worker.vnc_address,
    )


@router.delete(
    "/workers/{worker_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
def delete_worker(
    worker_id: str,
    registry: WorkerRegistry = Depends(get_registry),
) -> Response:
    """
    Remove a worker started through this API.
    """
    if not registry.release(worker_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": WorkerErrorCodes.WORKER_NOT_FOUND,
                "message": f"Worker {worker_id} not found.",
            },
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

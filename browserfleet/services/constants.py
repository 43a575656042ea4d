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

"""Shared constants for worker services."""

DEFAULT_SHM_SIZE = 268435456  # 256 MiB
DEFAULT_HOSTNAME = "localhost"
LOOPBACK_ADDRESS = "127.0.0.1"
PUBLISH_ALL_INTERFACES = "0.0.0.0"
DEFAULT_PROTOCOL = "tcp"
LIST_SEPARATOR = ","


class WorkerErrorCodes:
    """Canonical error codes for worker lifecycle operations."""

    # Docker runtime error codes
    DOCKER_INITIALIZATION_ERROR = "DOCKER::INITIALIZATION_ERROR"
    CONTAINER_CREATE_FAILED = "WORKER::CONTAINER_CREATE_FAILED"
    CONTAINER_START_FAILED = "WORKER::CONTAINER_START_FAILED"
    CONTAINER_INSPECT_FAILED = "WORKER::CONTAINER_INSPECT_FAILED"
    PORT_BINDING_UNAVAILABLE = "WORKER::PORT_BINDING_UNAVAILABLE"
    SERVICE_STARTUP_TIMEOUT = "WORKER::SERVICE_STARTUP_TIMEOUT"

    # Request error codes
    INVALID_PORT_SPEC = "WORKER::INVALID_PORT_SPEC"
    BROWSER_NOT_FOUND = "WORKER::BROWSER_NOT_FOUND"
    WORKER_NOT_FOUND = "WORKER::WORKER_NOT_FOUND"


class WorkerEvents:
    """Lifecycle event names emitted in log lines."""

    CREATING_CONTAINER = "CREATING_CONTAINER"
    STARTING_CONTAINER = "STARTING_CONTAINER"
    CONTAINER_STARTED = "CONTAINER_STARTED"
    SERVICE_STARTED = "SERVICE_STARTED"
    PROXY_TO = "PROXY_TO"
    REMOVE_CONTAINER = "REMOVE_CONTAINER"
    CONTAINER_REMOVED = "CONTAINER_REMOVED"
    FAILED_TO_REMOVE_CONTAINER = "FAILED_TO_REMOVE_CONTAINER"
    BAD_TIMEZONE = "BAD_TIMEZONE"


__all__ = [
    "DEFAULT_SHM_SIZE",
    "DEFAULT_HOSTNAME",
    "LOOPBACK_ADDRESS",
    "PUBLISH_ALL_INTERFACES",
    "DEFAULT_PROTOCOL",
    "LIST_SEPARATOR",
    "WorkerErrorCodes",
    "WorkerEvents",
]

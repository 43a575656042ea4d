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
Pydantic schemas for the Browser Fleet worker API.

This module defines the capability, environment and browser image models
consumed by the worker lifecycle services, plus the request/response
schemas of the HTTP surface.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Capabilities
# ============================================================================

class Caps(BaseModel):
    """
    Caller-supplied session capabilities relevant to worker provisioning.

    All values are kept as strings; flags are parsed tolerantly where used.
    """
    enable_vnc: Optional[str] = Field(
        None,
        alias="enableVNC",
        description="Boolean-as-string flag exposing the VNC port of the worker",
    )
    screen_resolution: Optional[str] = Field(
        None,
        alias="screenResolution",
        description="Screen resolution passed to the worker, e.g. 1920x1080x24",
    )
    time_zone: Optional[str] = Field(
        None,
        alias="timeZone",
        description="IANA time zone name for the worker, e.g. Europe/Moscow",
    )
    container_hostname: Optional[str] = Field(
        None,
        alias="containerHostname",
        description="Hostname override for the worker container",
    )
    hosts_entries: Optional[str] = Field(
        None,
        alias="hostsEntries",
        description="Comma-joined host:ip pairs prepended to the worker's extra hosts",
    )

    @field_validator("enable_vnc", mode="before")
    @classmethod
    def stringify_flag(cls, v: Any) -> Any:
        """Accept JSON booleans for the VNC flag."""
        if isinstance(v, bool):
            return "true" if v else "false"
        return v

    class Config:
        populate_by_name = True


# ============================================================================
# Browser Image Definition
# ============================================================================

class Browser(BaseModel):
    """
    Declarative definition of a browser image served by the fleet.
    """
    image: str = Field(..., description="Container image reference, e.g. browsers/chrome:100")
    port: str = Field(..., description="Primary service port inside the container")
    vnc: str = Field("5900", description="VNC port inside the container")
    path: str = Field("/", description="URL path prefix of the service inside the container")
    volumes: List[str] = Field(default_factory=list, description="Bind specifications host:container[:mode]")
    tmpfs: Dict[str, str] = Field(default_factory=dict, description="tmpfs mounts mapped to mount options")
    env: List[str] = Field(default_factory=list, description="Base environment in KEY=VALUE form")
    hosts: List[str] = Field(default_factory=list, description="Base extra hosts in host:ip form")
    shm_size: int = Field(0, alias="shmSize", ge=0, description="Shared memory size in bytes (0 = default)")

    class Config:
        populate_by_name = True


class BrowserVersions(BaseModel):
    """
    All versions of one browser in the catalog.
    """
    default: str = Field(..., description="Version used when the request does not name one")
    versions: Dict[str, Browser] = Field(default_factory=dict)


# ============================================================================
# Provisioning Context
# ============================================================================

class ServiceBase(BaseModel):
    """
    Per-request provisioning context.
    """
    request_id: str = Field(..., description="Opaque correlation token used in log lines")
    service: Browser = Field(..., description="Browser image definition to launch")
    application_containers: str = Field(
        "",
        description="Comma-joined peer container names (name or name:alias) to link",
    )
    startup_timeout: float = Field(30.0, gt=0, description="Readiness wait bound in seconds")


class LogConfigSpec(BaseModel):
    """
    Container log driver configuration.
    """
    type: str = Field("json-file", description="Docker log driver name")
    config: Dict[str, str] = Field(default_factory=dict, description="Log driver options")


class Environment(BaseModel):
    """
    Process-wide deployment topology and resource ceilings.
    """
    ip: str = Field("", description="Explicit externally reachable address of published ports")
    in_docker: bool = Field(False, description="Whether the orchestrator itself runs inside a container")
    network: str = Field("default", description="Container network (mode) to attach and prefer")
    memory: int = Field(0, ge=0, description="Memory ceiling in bytes (0 = unlimited)")
    nano_cpus: int = Field(0, ge=0, description="CPU ceiling in units of 1e-9 CPUs (0 = unlimited)")
    time_zone: str = Field("UTC", description="Local IANA zone used when the requested zone is unknown")
    log_config: Optional[LogConfigSpec] = Field(None, description="Log driver for workers")


# ============================================================================
# Worker API
# ============================================================================

class StartWorkerRequest(BaseModel):
    """
    Request to launch a browser worker.
    """
    browser_name: str = Field(..., alias="browserName", min_length=1)
    version: str = Field("", description="Browser version; empty selects the catalog default")
    caps: Caps = Field(default_factory=Caps)
    application_containers: str = Field("", alias="applicationContainers")

    class Config:
        populate_by_name = True


class StartWorkerResponse(BaseModel):
    """
    Address of a started worker.
    """
    id: str = Field(..., description="Runtime-assigned worker identifier")
    address: str = Field(..., description="URL at which the worker service responds")
    vnc_address: Optional[str] = Field(
        None,
        alias="vncAddress",
        description="host:port of the VNC server; absent when VNC is disabled",
    )

    class Config:
        populate_by_name = True


# ============================================================================
# Error Response
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standard error response for all non-2xx HTTP responses.
    """
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")

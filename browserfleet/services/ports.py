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
Port exposure planning for browser workers.

A worker always exposes its primary service port and, when the caller asks
for VNC, the VNC port as well. Whether those ports are published on the host
depends on the deployment topology: an orchestrator running inside a
container reaches workers over the container network and publishes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from browserfleet.api.schema import Browser, Caps, Environment
from browserfleet.services.constants import DEFAULT_PROTOCOL, PUBLISH_ALL_INTERFACES
from browserfleet.services.helpers import parse_bool

MAX_PORT = 65535


@dataclass(frozen=True)
class PortSpec:
    """A container port number together with its protocol."""

    number: str
    protocol: str = DEFAULT_PROTOCOL

    @property
    def key(self) -> str:
        """Docker's ``<port>/<proto>`` notation."""
        return f"{self.number}/{self.protocol}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class PortPlan:
    primary: PortSpec
    vnc: Optional[PortSpec]
    publish: bool

    @property
    def vnc_enabled(self) -> bool:
        return self.vnc is not None

    @property
    def exposed_ports(self) -> List[str]:
        ports = [self.primary.key]
        if self.vnc is not None:
            ports.append(self.vnc.key)
        return ports

    @property
    def port_bindings(self) -> Dict[str, Tuple[str]]:
        """Host bindings in docker-py form; an empty host port means ephemeral."""
        if not self.publish:
            return {}
        return {key: (PUBLISH_ALL_INTERFACES,) for key in self.exposed_ports}


def parse_port_spec(port: Optional[str], protocol: str = DEFAULT_PROTOCOL) -> PortSpec:
    """
    Validate a declared port.

    Raises:
        ValueError: If the port is empty, not numeric or out of range.
    """
    text = (port or "").strip()
    if not text:
        raise ValueError("empty string specified for port")
    if not text.isdigit():
        raise ValueError(f"invalid port '{text}'")
    if int(text) > MAX_PORT:
        raise ValueError(f"port '{text}' is out of range")
    return PortSpec(number=str(int(text)), protocol=protocol)


def vnc_enabled(caps: Caps) -> bool:
    return parse_bool(caps.enable_vnc)


def should_publish(environment: Environment) -> bool:
    """Publish to the host unless the orchestrator shares a network with its workers."""
    return bool(environment.ip) or not environment.in_docker


def build_port_plan(service: Browser, caps: Caps, environment: Environment) -> PortPlan:
    """
    Derive the port plan of a worker.

    Args:
        service: Browser image definition declaring the ports
        caps: Requested capabilities (VNC flag)
        environment: Deployment topology

    Returns:
        PortPlan: Ports to expose and how to publish them

    Raises:
        ValueError: If a declared port needed by the plan is invalid
    """
    try:
        primary = parse_port_spec(service.port)
    except ValueError as exc:
        raise ValueError(f"new primary port: {exc}") from exc

    vnc: Optional[PortSpec] = None
    if vnc_enabled(caps):
        try:
            vnc = parse_port_spec(service.vnc)
        except ValueError as exc:
            raise ValueError(f"new vnc port: {exc}") from exc

    return PortPlan(primary=primary, vnc=vnc, publish=should_publish(environment))


__all__ = [
    "PortSpec",
    "PortPlan",
    "parse_port_spec",
    "vnc_enabled",
    "should_publish",
    "build_port_plan",
]

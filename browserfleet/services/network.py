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
Reachable address resolution for started workers.

Three topologies are supported, in priority order:

1. An explicit external IP is configured: ``<ip>:<published host port>``.
2. The orchestrator runs inside a container: ``<container ip>:<declared port>``,
   since traffic reaches the worker over the container network.
3. The orchestrator runs on the bare host: ``127.0.0.1:<published host port>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from browserfleet.api.schema import Environment
from browserfleet.services.constants import LOOPBACK_ADDRESS
from browserfleet.services.helpers import join_host_port
from browserfleet.services.ports import PortPlan, PortSpec


@dataclass(frozen=True)
class NetworkSnapshot:
    """Network state reported by the runtime right after a worker starts."""

    ports: Dict[str, Optional[List[Dict[str, str]]]] = field(default_factory=dict)
    ip_address: str = ""
    networks: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_inspect(cls, attrs: Dict[str, Any]) -> "NetworkSnapshot":
        """Build a snapshot from a Docker container inspect payload."""
        settings = attrs.get("NetworkSettings", {}) or {}
        networks = {
            name: (conf or {}).get("IPAddress") or ""
            for name, conf in (settings.get("Networks", {}) or {}).items()
        }
        return cls(
            ports=dict(settings.get("Ports", {}) or {}),
            ip_address=settings.get("IPAddress") or "",
            networks=networks,
        )

    def has_port(self, port: PortSpec) -> bool:
        """Whether the runtime reports the port at all (published or not)."""
        return port.key in self.ports

    def host_port(self, port: PortSpec) -> str:
        """
        Return the first published host port of a container port.

        Raises:
            LookupError: If the port has no host binding
        """
        bindings = self.ports.get(port.key) or []
        if not bindings or not bindings[0].get("HostPort"):
            raise LookupError(f"no host binding available for {port}")
        return bindings[0]["HostPort"]


def get_container_ip(network_name: str, snapshot: NetworkSnapshot) -> str:
    """
    Pick the worker's internal address.

    The default address wins; otherwise the address on ``network_name``,
    otherwise the first network that has one. Returns an empty string when
    the worker has no address at all.
    """
    if snapshot.ip_address:
        return snapshot.ip_address
    candidates = []
    for name, ip_address in snapshot.networks.items():
        if not ip_address:
            continue
        if name == network_name:
            return ip_address
        candidates.append(ip_address)
    if candidates:
        return candidates[0]
    return ""


def _resolve(environment: Environment, snapshot: NetworkSnapshot, port: PortSpec) -> str:
    if environment.ip:
        return join_host_port(environment.ip, snapshot.host_port(port))
    if environment.in_docker:
        container_ip = get_container_ip(environment.network, snapshot)
        return join_host_port(container_ip, port.number)
    return join_host_port(LOOPBACK_ADDRESS, snapshot.host_port(port))


def resolve_addresses(
    environment: Environment,
    snapshot: NetworkSnapshot,
    plan: PortPlan,
) -> Tuple[str, Optional[str]]:
    """
    Resolve the primary and VNC addresses of a started worker.

    Args:
        environment: Deployment topology
        snapshot: Network state of the worker
        plan: Port plan used to create the worker, holding the validated
            port numbers; its VNC entry is present only when VNC was requested

    Returns:
        (primary, vnc) host:port strings; vnc is None when VNC is disabled

    Raises:
        LookupError: If a published host binding required by the topology is missing
    """
    primary = _resolve(environment, snapshot, plan.primary)
    vnc = None
    if plan.vnc is not None:
        vnc = _resolve(environment, snapshot, plan.vnc)
    return primary, vnc


__all__ = [
    "NetworkSnapshot",
    "get_container_ip",
    "resolve_addresses",
]

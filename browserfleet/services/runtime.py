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
Abstract container runtime interface consumed by the worker lifecycle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from browserfleet.api.schema import LogConfigSpec
from browserfleet.services.network import NetworkSnapshot


@dataclass
class ContainerSpec:
    """Everything the runtime needs to create one worker container."""

    image: str
    hostname: str
    environment: List[str]
    exposed_ports: List[str]
    port_bindings: Dict[str, Tuple[str]] = field(default_factory=dict)
    binds: List[str] = field(default_factory=list)
    tmpfs: Dict[str, str] = field(default_factory=dict)
    network_mode: str = "default"
    shm_size: int = 0
    privileged: bool = True
    memory: int = 0
    nano_cpus: int = 0
    extra_hosts: List[str] = field(default_factory=list)
    links: List[Tuple[str, str]] = field(default_factory=list)
    log_config: Optional[LogConfigSpec] = None
    auto_remove: bool = False


class ContainerRuntime(ABC):
    """
    Abstract interface for the engine that runs worker containers.

    Implementations must be safe to call from multiple threads. Besides
    DockerException, a lost or slow daemon connection surfaces as
    requests.RequestException.
    """

    @abstractmethod
    def create(self, spec: ContainerSpec) -> str:
        """
        Create (but do not start) a container.

        Args:
            spec: Container specification

        Returns:
            Runtime-assigned container ID

        Raises:
            DockerException: If creation fails
        """
        pass

    @abstractmethod
    def start(self, container_id: str) -> None:
        """
        Start a created container.

        Raises:
            DockerException: If the container cannot be started
        """
        pass

    @abstractmethod
    def inspect(self, container_id: str) -> NetworkSnapshot:
        """
        Read the network state of a container.

        Raises:
            DockerException: If the container cannot be inspected
        """
        pass

    @abstractmethod
    def remove(self, container_id: str) -> None:
        """
        Forcibly remove a container together with its anonymous volumes.

        Raises:
            DockerException: If removal fails
        """
        pass

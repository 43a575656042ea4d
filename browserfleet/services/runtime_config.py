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

"""Runtime settings (environment, hostname, hosts, shm) of a browser worker."""

import logging
from typing import List, Tuple
from zoneinfo import ZoneInfo

from browserfleet.api.schema import Browser, Caps, Environment, ServiceBase
from browserfleet.services.constants import DEFAULT_HOSTNAME, DEFAULT_SHM_SIZE, WorkerEvents
from browserfleet.services.helpers import split_list

logger = logging.getLogger(__name__)


def resolve_time_zone(request_id: str, caps: Caps, environment: Environment) -> str:
    """Return the requested zone if it exists, otherwise the local zone."""
    if not caps.time_zone:
        return environment.time_zone
    try:
        ZoneInfo(caps.time_zone)
    except (KeyError, ValueError, OSError) as exc:
        # KeyError: unknown zone, ValueError: malformed key, OSError: zone directory
        logger.warning(
            "request=%s | event=%s | time_zone=%s | fallback=%s | error=%s",
            request_id,
            WorkerEvents.BAD_TIMEZONE,
            caps.time_zone,
            environment.time_zone,
            exc,
        )
        return environment.time_zone
    return caps.time_zone


def build_env(service_base: ServiceBase, caps: Caps, environment: Environment) -> List[str]:
    """
    Compose the worker environment.

    Generated variables come first and the image's base environment follows,
    so a base entry with the same name shadows the generated one.
    """
    env = [
        f"TZ={resolve_time_zone(service_base.request_id, caps, environment)}",
        f"SCREEN_RESOLUTION={caps.screen_resolution or ''}",
        f"ENABLE_VNC={caps.enable_vnc or ''}",
    ]
    env.extend(service_base.service.env)
    return env


def get_shm_size(service: Browser) -> int:
    if service.shm_size > 0:
        return service.shm_size
    return DEFAULT_SHM_SIZE


def get_container_hostname(caps: Caps) -> str:
    if caps.container_hostname:
        return caps.container_hostname
    return DEFAULT_HOSTNAME


def get_extra_hosts(service: Browser, caps: Caps) -> List[str]:
    """Requested host entries first, then the image's declared hosts."""
    return split_list(caps.hosts_entries) + list(service.hosts)


def get_links(service_base: ServiceBase) -> List[Tuple[str, str]]:
    """Peer container links as (name, alias) pairs."""
    links = []
    for entry in split_list(service_base.application_containers):
        name, _, alias = entry.partition(":")
        links.append((name, alias or name))
    return links


__all__ = [
    "resolve_time_zone",
    "build_env",
    "get_shm_size",
    "get_container_hostname",
    "get_extra_hosts",
    "get_links",
]

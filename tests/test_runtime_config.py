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

import logging

import pytest

from browserfleet.api.schema import Browser, Caps, Environment, ServiceBase
from browserfleet.services.runtime_config import (
    build_env,
    get_container_hostname,
    get_extra_hosts,
    get_links,
    get_shm_size,
    resolve_time_zone,
)


def test_unknown_time_zone_falls_back_to_local_zone(caplog, monkeypatch):
    # Application logging stops propagation at the package logger.
    monkeypatch.setattr(logging.getLogger("browserfleet"), "propagate", True)
    env = Environment(time_zone="Europe/Berlin")

    with caplog.at_level(logging.WARNING, logger="browserfleet.services.runtime_config"):
        zone = resolve_time_zone("req-1", Caps(timeZone="Not/AZone"), env)

    assert zone == "Europe/Berlin"
    assert "BAD_TIMEZONE" in caplog.text
    assert "req-1" in caplog.text


def test_malformed_time_zone_falls_back_to_local_zone():
    zone = resolve_time_zone("req-1", Caps(timeZone="../etc/passwd"), Environment(time_zone="UTC"))

    assert zone == "UTC"


@pytest.mark.parametrize("zone", ["America", "Etc", "Europe/", "a\x00b"])
def test_zone_directory_or_garbage_falls_back_to_local_zone(zone):
    resolved = resolve_time_zone("req-1", Caps(timeZone=zone), Environment(time_zone="Europe/Berlin"))

    assert resolved == "Europe/Berlin"


def test_zone_directory_does_not_fail_env(service_base):
    env = build_env(service_base, Caps(timeZone="America"), Environment(time_zone="UTC"))

    assert env[0] == "TZ=UTC"


def test_known_time_zone_is_used():
    zone = resolve_time_zone("req-1", Caps(timeZone="America/New_York"), Environment(time_zone="UTC"))

    assert zone == "America/New_York"


def test_env_order_generated_then_base(service_base):
    service_base.service.env = ["LANG=en_US.UTF-8", "TZ=Asia/Tokyo"]
    caps = Caps(enableVNC="true", screenResolution="1280x1024x24", timeZone="Europe/Moscow")

    env = build_env(service_base, caps, Environment())

    assert env == [
        "TZ=Europe/Moscow",
        "SCREEN_RESOLUTION=1280x1024x24",
        "ENABLE_VNC=true",
        "LANG=en_US.UTF-8",
        "TZ=Asia/Tokyo",
    ]


def test_env_with_empty_caps(service_base):
    env = build_env(service_base, Caps(), Environment(time_zone="UTC"))

    assert env == ["TZ=UTC", "SCREEN_RESOLUTION=", "ENABLE_VNC="]


def test_shm_size_default_and_override():
    assert get_shm_size(Browser(image="a", port="4444", shmSize=0)) == 268435456
    assert get_shm_size(Browser(image="a", port="4444", shmSize=1073741824)) == 1073741824


def test_hostname_override():
    assert get_container_hostname(Caps()) == "localhost"
    assert get_container_hostname(Caps(containerHostname="")) == "localhost"
    assert get_container_hostname(Caps(containerHostname="worker-7")) == "worker-7"


def test_extra_hosts_requested_entries_come_first():
    service = Browser(image="a", port="4444", hosts=["c:3"])

    assert get_extra_hosts(service, Caps(hostsEntries="a:1,b:2")) == ["a:1", "b:2", "c:3"]
    assert get_extra_hosts(service, Caps()) == ["c:3"]


def test_extra_hosts_do_not_mutate_service():
    service = Browser(image="a", port="4444", hosts=["c:3"])

    get_extra_hosts(service, Caps(hostsEntries="a:1"))

    assert service.hosts == ["c:3"]


def test_links_from_application_containers(chrome):
    service_base = ServiceBase(
        request_id="req-1",
        service=chrome,
        application_containers="db,cache:redis",
    )

    assert get_links(service_base) == [("db", "db"), ("cache", "redis")]
    assert get_links(ServiceBase(request_id="req-2", service=chrome)) == []

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

import pytest

from browserfleet.api.schema import Browser, Caps, Environment
from browserfleet.services.ports import PortSpec, build_port_plan, parse_port_spec


def test_parse_port_spec_defaults_to_tcp():
    spec = parse_port_spec("4444")
    assert spec == PortSpec(number="4444", protocol="tcp")
    assert spec.key == "4444/tcp"
    assert str(spec) == "4444/tcp"


@pytest.mark.parametrize("port", ["", "   ", "http", "44a4", "-1", "65536", None])
def test_parse_port_spec_rejects_invalid(port):
    with pytest.raises(ValueError):
        parse_port_spec(port)


def test_bare_host_with_vnc_publishes_both_ports(chrome, vnc_caps):
    plan = build_port_plan(chrome, vnc_caps, Environment(in_docker=False))

    assert plan.vnc_enabled
    assert plan.exposed_ports == ["4444/tcp", "5900/tcp"]
    assert plan.port_bindings == {
        "4444/tcp": ("0.0.0.0",),
        "5900/tcp": ("0.0.0.0",),
    }


def test_in_docker_without_ip_publishes_nothing(chrome, vnc_caps):
    plan = build_port_plan(chrome, vnc_caps, Environment(in_docker=True))

    assert plan.exposed_ports == ["4444/tcp", "5900/tcp"]
    assert plan.publish is False
    assert plan.port_bindings == {}


def test_in_docker_with_explicit_ip_publishes(chrome):
    plan = build_port_plan(chrome, Caps(), Environment(in_docker=True, ip="203.0.113.5"))

    assert plan.port_bindings == {"4444/tcp": ("0.0.0.0",)}


def test_vnc_disabled_exposes_primary_only(chrome):
    plan = build_port_plan(chrome, Caps(enableVNC="false"), Environment())

    assert plan.vnc is None
    assert plan.exposed_ports == ["4444/tcp"]


def test_malformed_vnc_flag_disables_vnc(chrome):
    plan = build_port_plan(chrome, Caps(enableVNC="sure"), Environment())

    assert plan.vnc is None
    assert plan.exposed_ports == ["4444/tcp"]


def test_json_boolean_vnc_flag_is_accepted(chrome):
    caps = Caps.model_validate({"enableVNC": True})

    assert caps.enable_vnc == "true"
    assert build_port_plan(chrome, caps, Environment()).vnc_enabled


def test_invalid_primary_port_is_configuration_error():
    service = Browser(image="broken:1", port="web")

    with pytest.raises(ValueError, match="primary port"):
        build_port_plan(service, Caps(), Environment())


def test_invalid_vnc_port_only_matters_when_vnc_requested():
    service = Browser(image="broken:1", port="4444", vnc="")

    assert build_port_plan(service, Caps(), Environment()).vnc is None
    with pytest.raises(ValueError, match="vnc port"):
        build_port_plan(service, Caps(enableVNC="1"), Environment())

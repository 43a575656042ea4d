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

"""Parsing helpers shared by worker services and configuration."""

import re
from typing import List, Optional

from browserfleet.services.constants import LIST_SEPARATOR

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}

_MEMORY_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")
_MEMORY_UNITS = {
    "": 1,
    "b": 1,
    "k": 1000,
    "m": 1000 ** 2,
    "g": 1000 ** 3,
    "t": 1000 ** 4,
    "ki": 1024,
    "mi": 1024 ** 2,
    "gi": 1024 ** 3,
    "ti": 1024 ** 4,
}


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """
    Parse a capability flag without ever failing.

    Accepts the usual spellings of true/false. Anything else (including None)
    yields ``default`` instead of an error, so a malformed capability simply
    disables the feature it controls.
    """
    if value is None:
        return default
    text = str(value).strip()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return default


def parse_memory_limit(value: Optional[str]) -> Optional[int]:
    """Convert a memory quantity such as ``512Mi`` or ``1G`` to bytes."""
    if not value:
        return None
    match = _MEMORY_PATTERN.match(str(value))
    if not match:
        return None
    number, unit = match.groups()
    multiplier = _MEMORY_UNITS.get(unit.lower())
    if multiplier is None:
        return None
    return int(float(number) * multiplier)


def parse_nano_cpus(value: Optional[str]) -> Optional[int]:
    """Convert a CPU quantity such as ``500m`` or ``2`` to Docker nano CPUs."""
    if not value:
        return None
    text = str(value).strip().lower()
    try:
        if text.endswith("m"):
            return int(float(text[:-1]) * 1_000_000)
        return int(float(text) * 1_000_000_000)
    except ValueError:
        return None


def split_list(value: Optional[str]) -> List[str]:
    """Split a comma-joined capability value, dropping blank entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(LIST_SEPARATOR) if item.strip()]


def join_host_port(host: str, port: str) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


__all__ = [
    "parse_bool",
    "parse_memory_limit",
    "parse_nano_cpus",
    "split_list",
    "join_host_port",
]

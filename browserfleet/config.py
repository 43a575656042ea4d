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
Application configuration for Browser Fleet.

Configuration is read from a TOML file whose path comes from the
BROWSER_FLEET_CONFIG_PATH environment variable (default
~/.browser-fleet.toml). A missing file yields the defaults below.

Example:

    [server]
    host = "0.0.0.0"
    port = 4444
    log_level = "INFO"

    [docker]
    in_docker = false
    network = "default"
    memory = "1Gi"
    cpu = "1"
    time_zone = "UTC"
    startup_timeout = 30

    [docker.log_config]
    type = "json-file"
    config = { max-size = "10m" }

    [catalog]
    browsers_path = "browsers.json"
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from browserfleet.api.schema import Environment, LogConfigSpec
from browserfleet.services.helpers import parse_memory_limit, parse_nano_cpus

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "BROWSER_FLEET_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "~/.browser-fleet.toml"


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(4444, ge=1, le=65535)
    log_level: str = "INFO"


class DockerConfig(BaseModel):
    """Worker runtime settings."""

    ip: str = Field("", description="Explicit externally reachable address of published ports")
    in_docker: bool = Field(False, description="Set when the fleet itself runs in a container")
    network: str = Field("default", description="Network workers are attached to")
    memory: Optional[str] = Field(None, description="Per-worker memory ceiling, e.g. 1Gi")
    cpu: Optional[str] = Field(None, description="Per-worker CPU ceiling, e.g. 500m or 2")
    time_zone: str = Field("UTC", description="Zone used when a requested zone is unknown")
    startup_timeout: float = Field(30.0, gt=0, description="Seconds to wait for a worker to respond")
    log_config: Optional[LogConfigSpec] = None

    @field_validator("memory")
    @classmethod
    def validate_memory(cls, v: Optional[str]) -> Optional[str]:
        if v and parse_memory_limit(v) is None:
            raise ValueError(f"invalid memory limit '{v}'")
        return v

    @field_validator("cpu")
    @classmethod
    def validate_cpu(cls, v: Optional[str]) -> Optional[str]:
        if v and parse_nano_cpus(v) is None:
            raise ValueError(f"invalid cpu limit '{v}'")
        return v


class CatalogConfig(BaseModel):
    """Location of the browsers catalog."""

    browsers_path: str = "browsers.json"


class AppConfig(BaseModel):
    """Top-level configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    @classmethod
    def from_file(cls, path: str) -> "AppConfig":
        """
        Load configuration from a TOML file.

        Relative catalog paths are resolved against the config file's directory.
        """
        config_path = Path(path).expanduser()
        with config_path.open("rb") as fh:
            data = tomllib.load(fh)
        config = cls.model_validate(data)
        browsers_path = Path(config.catalog.browsers_path).expanduser()
        if not browsers_path.is_absolute():
            config.catalog.browsers_path = str(config_path.parent / browsers_path)
        return config

    def to_environment(self) -> Environment:
        """Build the process-wide worker environment."""
        docker_cfg = self.docker
        return Environment(
            ip=docker_cfg.ip,
            in_docker=docker_cfg.in_docker,
            network=docker_cfg.network,
            memory=parse_memory_limit(docker_cfg.memory) or 0,
            nano_cpus=parse_nano_cpus(docker_cfg.cpu) or 0,
            time_zone=docker_cfg.time_zone,
            log_config=docker_cfg.log_config,
        )


_config: Optional[AppConfig] = None


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration and make it the process-wide instance."""
    global _config
    config_path = Path(path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH).expanduser()
    if config_path.exists():
        _config = AppConfig.from_file(str(config_path))
        logger.info("Loaded configuration from %s", config_path)
    else:
        logger.warning("Configuration file %s not found; using defaults.", config_path)
        _config = AppConfig()
    return _config


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    if _config is None:
        return load_config()
    return _config


__all__ = [
    "AppConfig",
    "ServerConfig",
    "DockerConfig",
    "CatalogConfig",
    "load_config",
    "get_config",
]

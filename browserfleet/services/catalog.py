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
Catalog of browser images served by the fleet.

The catalog is a JSON document keyed by browser name:

    {
      "chrome": {
        "default": "100.0",
        "versions": {
          "100.0": {"image": "browsers/chrome:100", "port": "4444", "path": "/"}
        }
      }
    }
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import RootModel, ValidationError

from browserfleet.api.schema import Browser, BrowserVersions

logger = logging.getLogger(__name__)


class BrowserCatalog(RootModel[Dict[str, BrowserVersions]]):
    """
    Browser name to versions mapping.
    """

    @classmethod
    def from_file(cls, path: str) -> "BrowserCatalog":
        """
        Load the catalog from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the document is not a valid catalog
        """
        catalog_path = Path(path).expanduser()
        raw = catalog_path.read_text(encoding="utf-8")
        try:
            catalog = cls.model_validate_json(raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid browsers catalog {catalog_path}: {exc}") from exc
        logger.info("Loaded %d browser(s) from %s", len(catalog.root), catalog_path)
        return catalog

    def find(self, name: str, version: str = "") -> Optional[Tuple[Browser, str]]:
        """
        Look up a browser definition.

        An empty version selects the default one. Otherwise an exact match
        wins over the first version that starts with the requested prefix.

        Returns:
            (browser, resolved version) or None when nothing matches
        """
        entry = self.root.get(name)
        if entry is None:
            return None
        if not version:
            version = entry.default
        browser = entry.versions.get(version)
        if browser is not None:
            return browser, version
        for candidate, browser in entry.versions.items():
            if candidate.startswith(version):
                return browser, candidate
        return None


__all__ = [
    "BrowserCatalog",
]

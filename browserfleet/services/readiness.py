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
Readiness probing of worker services.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 0.05
MAX_ATTEMPT_TIMEOUT_SECONDS = 1.0


class ReadinessProbe(ABC):
    """Blocks until a URL responds or a timeout elapses."""

    @abstractmethod
    def wait(self, url: str, timeout: float) -> None:
        """
        Wait for the service at ``url``.

        Raises:
            TimeoutError: If nothing responds within ``timeout`` seconds
        """
        pass


class HttpReadinessProbe(ReadinessProbe):
    """
    Polls a URL with HEAD requests.

    Any HTTP response, whatever its status, means the server inside the
    worker is accepting connections. Each wait uses its own session, so one
    probe can serve concurrent provisioning threads.
    """

    def __init__(
        self,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.poll_interval_seconds = poll_interval_seconds
        self.session_factory = session_factory

    def wait(self, url: str, timeout: float) -> None:
        session = self.session_factory()
        try:
            self._poll(session, url, timeout)
        finally:
            session.close()

    def _poll(self, session: requests.Session, url: str, timeout: float) -> None:
        start_time = time.monotonic()
        deadline = start_time + timeout
        attempts = 0
        last_error = None

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            attempts += 1
            try:
                response = session.head(
                    url,
                    timeout=min(remaining, MAX_ATTEMPT_TIMEOUT_SECONDS),
                    allow_redirects=False,
                    headers={"Connection": "close"},
                )
                response.close()
                logger.debug(
                    "url=%s | attempts=%d | status=%s | elapsed=%.2f",
                    url,
                    attempts,
                    response.status_code,
                    time.monotonic() - start_time,
                )
                return
            except requests.RequestException as exc:
                last_error = exc
            time.sleep(min(self.poll_interval_seconds, max(deadline - time.monotonic(), 0)))

        raise TimeoutError(
            f"{url} does not respond in {timeout}s "
            f"(attempts: {attempts}, last error: {last_error})"
        )


__all__ = [
    "ReadinessProbe",
    "HttpReadinessProbe",
]

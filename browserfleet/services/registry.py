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

"""In-memory registry of workers handed out over HTTP."""

import logging
from threading import Lock
from typing import Dict

from browserfleet.services.worker_service import StartedWorker

logger = logging.getLogger(__name__)


class WorkerRegistry:
    """Thread-safe mapping of worker ID to its handle."""

    def __init__(self):
        self._lock = Lock()
        self._workers: Dict[str, StartedWorker] = {}

    def add(self, worker: StartedWorker) -> None:
        with self._lock:
            self._workers[worker.worker_id] = worker

    def release(self, worker_id: str) -> bool:
        """
        Forget a worker and remove its container.

        Returns:
            False if the worker is unknown
        """
        with self._lock:
            worker = self._workers.pop(worker_id, None)
        if worker is None:
            return False
        worker.cancel()
        return True

    def release_all(self) -> None:
        """Remove every tracked worker, e.g. on shutdown."""
        with self._lock:
            workers = list(self._workers.values())
            self._workers.clear()
        if workers:
            logger.info("Removing %d worker(s) on shutdown", len(workers))
        for worker in workers:
            worker.cancel()


__all__ = [
    "WorkerRegistry",
]

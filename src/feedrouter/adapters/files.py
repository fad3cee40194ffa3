"""
YAML-file collaborators.

The files are re-read on every call so edits are picked up by the next
poll. Reads run in a worker thread to keep the event loop free.

terms.yaml:
    terms:
      - clinton
      - obama

workers.yaml:
    workers:
      - id: https://compute.example/zones/z1/instances/will-nodes-a1b2
        lifecycle_state: RUNNING
"""

import asyncio
import logging
from pathlib import Path

import yaml

from feedrouter.models import ManagedWorker

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> dict:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


class YamlTermSource:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def list_terms(self) -> list[str]:
        data = await asyncio.to_thread(_read_yaml, self.path)
        terms = data.get("terms") or []
        if not isinstance(terms, list):
            raise ValueError(f"{self.path}: 'terms' must be a list")
        return [str(term) for term in terms if term is not None]


class YamlWorkerInventory:
    """Worker manifest from a YAML file.

    A file without a ``workers`` key is a provider with no manifest (None).
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def list_managed_workers(self) -> list[ManagedWorker] | None:
        data = await asyncio.to_thread(_read_yaml, self.path)
        if "workers" not in data or data["workers"] is None:
            return None

        workers = []
        for entry in data["workers"]:
            if isinstance(entry, str):
                entry = {"id": entry}
            workers.append(ManagedWorker.model_validate(entry))
        return workers

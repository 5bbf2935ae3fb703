"""Durable record of which logical sources have been indexed."""

import json
from pathlib import Path
from typing import Iterator

from ..logging_config import get_logger

logger = get_logger(__name__)

REGISTRY_FILE = "indexed-folders.json"
ENTIRE_WORKSPACE = "Entire Workspace"


class IndexedSourceRegistry:
    """Ordered set of source labels persisted as a JSON array.

    Labels are workspace-relative folder paths, file paths, or
    ``ENTIRE_WORKSPACE``. The file is rewritten wholesale by ``save()``;
    a missing or malformed file loads as an empty registry.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._sources: dict[str, None] = {}

    def load(self) -> None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            data = []
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Registry %s unreadable (%s); starting empty", self.path, e)
            data = []

        if not isinstance(data, list):
            logger.warning("Registry %s is not a JSON array; starting empty", self.path)
            data = []
        self._sources = {str(label): None for label in data}

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(list(self._sources), indent=2), encoding="utf-8")

    def add(self, label: str) -> None:
        self._sources[label] = None

    def discard(self, label: str) -> None:
        self._sources.pop(label, None)

    def clear(self) -> None:
        self._sources.clear()

    def sources(self) -> list[str]:
        return list(self._sources)

    def __contains__(self, label: object) -> bool:
        return label in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sources))

    def __len__(self) -> int:
        return len(self._sources)

import json
import logging
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class MemoryStorage(MutableMapping):
    """Process-local key/value store with the same interface as ``LocalStorage``."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


class LocalStorage(MemoryStorage):
    """
    Key/value store persisted to a JSON file.

    The file is read once on construction and rewritten on every change, so
    the access token and cached bank list survive restarts.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        super().__init__(self._load())

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(f"[Storage] Ignoring unreadable storage file {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def __setitem__(self, key: str, value: Any) -> None:
        super().__setitem__(key, value)
        self._save()

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self._save()

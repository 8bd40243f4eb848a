"""Key-value tree store contract and the in-memory implementation."""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Protocol

from models.records import ReadingCollection

_INTEGER_KEY = re.compile(r"^-?(0|[1-9]\d{0,9})$")
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


class TreeStoreError(RuntimeError):
    """Raised when the backing store cannot be reached or queried."""


class TreeStore(Protocol):
    def read(self, path: str) -> Any: ...

    def read_last_n(self, path: str, n: int) -> ReadingCollection: ...

    def ping(self) -> bool: ...


def split_path(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _key_sort_key(key: str) -> tuple[int, int, str]:
    # Realtime Database order: 32-bit integer keys numerically, then strings.
    if _INTEGER_KEY.match(key):
        number = int(key)
        if _INT32_MIN <= number <= _INT32_MAX:
            return (0, number, "")
    return (1, 0, key)


def ordered_keys(keys: Iterable[str]) -> List[str]:
    return sorted(keys, key=_key_sort_key)


def as_collection(value: Any) -> ReadingCollection:
    """Normalise a subtree into a key -> reading mapping.

    Sequential integer keys come back from the database as arrays with
    ``None`` holes; those are turned back into string-keyed mappings.
    """
    if isinstance(value, dict):
        return {str(key): item for key, item in value.items()}
    if isinstance(value, list):
        return {str(index): item for index, item in enumerate(value) if item is not None}
    return {}


class InMemoryTreeStore:
    """Nested-dict tree, optionally backed by a JSON file."""

    def __init__(
        self,
        name: str = "default",
        data: Optional[Dict[str, Any]] = None,
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self._root: Dict[str, Any] = copy.deepcopy(data) if data else {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def read(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for segment in split_path(path):
                if isinstance(node, list) and segment.isdigit():
                    index = int(segment)
                    node = node[index] if index < len(node) else None
                elif isinstance(node, dict):
                    node = node.get(segment)
                else:
                    return None
                if node is None:
                    return None
            return copy.deepcopy(node)

    def read_last_n(self, path: str, n: int) -> ReadingCollection:
        collection = as_collection(self.read(path))
        if n <= 0:
            return {}
        keys = ordered_keys(collection)[-n:]
        return {key: collection[key] for key in keys}

    def write(self, path: str, value: Any) -> None:
        """Set ``value`` at ``path``; ``None`` removes the node."""
        segments = split_path(path)
        with self._lock:
            if not segments:
                self._root = copy.deepcopy(value) if isinstance(value, dict) else {}
                self._persist()
                return

            node = self._root
            for segment in segments[:-1]:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = {}
                    node[segment] = child
                node = child

            if value is None:
                node.pop(segments[-1], None)
            else:
                node[segments[-1]] = copy.deepcopy(value)
            self._persist()

    def ping(self) -> bool:
        return True

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._root, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        if isinstance(data, dict):
            self._root = data

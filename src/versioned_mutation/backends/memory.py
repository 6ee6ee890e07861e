from __future__ import annotations

import copy
import threading
from typing import Any, Hashable, Mapping

from ..records import Record


class InMemoryStore:
    """
    Process-local record store.

    Records live in a dict; the compare-and-swap in `conditional_update` is
    made atomic with a ``threading.Lock`` held only for the duration of the
    comparison and write. Reads and writes copy attributes so callers never
    share mutable state with the store.

    Useful for tests, single-process tools, and as a reference for what a
    real adapter must guarantee.

    Thread/process safety
    ---------------------
    Safe across threads of one process. Not shared between processes.
    """

    def __init__(self) -> None:
        self._records: dict[Hashable, tuple[dict[str, Any], int]] = {}
        self._lock = threading.Lock()

    def put(
        self, key: Hashable, attributes: Mapping[str, Any], version: int = 1
    ) -> Record:
        """Create or replace a record unconditionally."""
        with self._lock:
            self._records[key] = (copy.deepcopy(dict(attributes)), version)
        return Record(key=key, attributes=copy.deepcopy(dict(attributes)), version=version)

    def get(self, key: Hashable) -> Record | None:
        return self.fetch(key)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._records.pop(key, None) is not None

    def fetch(self, key: Hashable) -> Record | None:
        with self._lock:
            entry = self._records.get(key)
            if entry is None:
                return None
            attributes, version = entry
            return Record(key=key, attributes=copy.deepcopy(attributes), version=version)

    def conditional_update(
        self,
        key: Hashable,
        expected_version: int,
        new_attributes: Mapping[str, Any],
        new_version: int,
    ) -> bool:
        with self._lock:
            entry = self._records.get(key)
            if entry is None or entry[1] != expected_version:
                return False
            self._records[key] = (copy.deepcopy(dict(new_attributes)), new_version)
            return True

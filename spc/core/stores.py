"""Key-value stores that can hold the legacy calculator blob.

The codec only needs a ``MutableMapping[str, str]``; these are the two backends the
CLI and tests use. Streamlit's ``st.session_state`` satisfies the same interface.
"""

from __future__ import annotations

import json
import warnings as _warnings
from collections.abc import MutableMapping
from pathlib import Path
from typing import Iterator


class MemoryStore(MutableMapping):
    """Dict-backed store (tests and single-process sessions)."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryStore({self._data!r})"


class JsonFileStore(MemoryStore):
    """Store persisted as a single JSON object on disk, rewritten on every change.

    A missing file is an empty store. An unreadable or non-object file is also
    treated as empty (with a warning) and is overwritten on the next change.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(self._read())

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            _warnings.warn(f"Ignoring unreadable store file {self.path}: {exc}")
            return {}
        if not isinstance(data, dict):
            _warnings.warn(f"Ignoring store file {self.path}: expected a JSON object")
            return {}
        return {str(k): v for k, v in data.items()}

    def _flush(self) -> None:
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(self._data, fh, indent=2)

    def __setitem__(self, key: str, value: str) -> None:
        super().__setitem__(key, value)
        self._flush()

    def __delitem__(self, key: str) -> None:
        super().__delitem__(key)
        self._flush()

    def __repr__(self) -> str:
        return f"JsonFileStore({str(self.path)!r})"

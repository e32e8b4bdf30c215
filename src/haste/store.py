"""Datum persistence.

A datum is one stored ResultFile plus an optional comment, addressed by
a dense integer ID: the first datum is 0 and every new one is one more
than the largest existing ID.  Datums are never modified or deleted.

On disk (DirectoryStore)::

    .haste/
      0/
        data.json    — ResultFile
        extra.json   — {"comment": "..."} (comment may be null)
      1/
        ...
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path

from haste.results import ResultFile

log = logging.getLogger("haste")

DOT_DIR = ".haste"


class DatumNotFound(LookupError):
    """No datum with the requested ID exists."""

    def __init__(self, datum_id: int) -> None:
        super().__init__(f"no such datum: {datum_id}")
        self.datum_id = datum_id


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class DatumStore:
    """Storage for datums.  Subclasses implement the primitive operations."""

    def list_ids(self) -> set[int]:
        raise NotImplementedError

    def store(self, datum_id: int, results: ResultFile, comment: str | None = None) -> None:
        raise NotImplementedError

    def load(self, datum_id: int) -> ResultFile:
        raise NotImplementedError

    def load_comment(self, datum_id: int) -> str | None:
        raise NotImplementedError

    def allocate_next_id(self) -> int:
        """Return the ID the next stored datum should get."""
        ids = self.list_ids()
        return max(ids) + 1 if ids else 0

    def store_datum(self, results: ResultFile, comment: str | None = None) -> int:
        """Store a new datum and return its ID."""
        datum_id = self.allocate_next_id()
        self.store(datum_id, results, comment)
        log.info("Stored datum %d (%d benchmarks)", datum_id, len(results.data))
        return datum_id


# ---------------------------------------------------------------------------
# Directory-backed store
# ---------------------------------------------------------------------------


class DirectoryStore(DatumStore):
    """One sub-directory per datum below *state_dir*."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = state_dir

    def datum_dir(self, datum_id: int) -> Path:
        return self.state_dir / str(datum_id)

    def results_path(self, datum_id: int) -> Path:
        return self.datum_dir(datum_id) / "data.json"

    def extra_path(self, datum_id: int) -> Path:
        return self.datum_dir(datum_id) / "extra.json"

    def list_ids(self) -> set[int]:
        if not self.state_dir.is_dir():
            return set()
        ids: set[int] = set()
        for entry in self.state_dir.iterdir():
            if entry.is_dir() and entry.name.isascii() and entry.name.isdigit():
                ids.add(int(entry.name))
        return ids

    def store(self, datum_id: int, results: ResultFile, comment: str | None = None) -> None:
        """Write a datum.

        The files are written to a scratch directory which is then renamed
        to the datum ID, so a failed write never leaves a half-stored datum.

        Raises:
            FileExistsError: If a datum with this ID already exists.
        """
        self.state_dir.mkdir(parents=True, exist_ok=True)
        datum_dir = self.datum_dir(datum_id)
        if datum_dir.exists():
            raise FileExistsError(f"datum {datum_id} already exists: {datum_dir}")

        scratch = Path(tempfile.mkdtemp(prefix=".tmp-", dir=self.state_dir))
        try:
            (scratch / "data.json").write_text(json.dumps(results.to_dict(), indent=2) + "\n")
            (scratch / "extra.json").write_text(json.dumps({"comment": comment}, indent=2) + "\n")
            scratch.rename(datum_dir)
        except BaseException:
            shutil.rmtree(scratch, ignore_errors=True)
            raise
        log.debug("Wrote %s", datum_dir)

    def load(self, datum_id: int) -> ResultFile:
        path = self.results_path(datum_id)
        if not path.exists():
            raise DatumNotFound(datum_id)
        data = _read_json(path)
        try:
            return ResultFile.from_dict(data)
        except ValueError as exc:
            raise ValueError(f"Malformed datum file {path}: {exc}") from exc

    def load_comment(self, datum_id: int) -> str | None:
        if not self.datum_dir(datum_id).is_dir():
            raise DatumNotFound(datum_id)
        path = self.extra_path(datum_id)
        if not path.exists():
            return None
        comment = _read_json(path).get("comment")
        return None if comment is None else str(comment)


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed datum file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Malformed datum file {path}: expected a JSON object")
    return data


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemoryStore(DatumStore):
    """Keeps datums in a dict; nothing touches the filesystem."""

    def __init__(self) -> None:
        self._datums: dict[int, tuple[ResultFile, str | None]] = {}

    def list_ids(self) -> set[int]:
        return set(self._datums)

    def store(self, datum_id: int, results: ResultFile, comment: str | None = None) -> None:
        if datum_id in self._datums:
            raise FileExistsError(f"datum {datum_id} already exists")
        # Copies in and out: a stored datum never changes.
        self._datums[datum_id] = (ResultFile.from_dict(results.to_dict()), comment)

    def load(self, datum_id: int) -> ResultFile:
        try:
            results, _ = self._datums[datum_id]
        except KeyError:
            raise DatumNotFound(datum_id) from None
        return ResultFile.from_dict(results.to_dict())

    def load_comment(self, datum_id: int) -> str | None:
        try:
            _, comment = self._datums[datum_id]
        except KeyError:
            raise DatumNotFound(datum_id) from None
        return comment

"""Incremental declaration cache keyed by file content hash."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from models.source import ImportSpecifier  # noqa: TC001
from parse.treesitter_declarations import Declarations

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_SCHEMA_VERSION = 1


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class CacheEntry(BaseModel):
    """Declarations cached for one file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sha256: str = Field(description="SHA-256 hex digest of the file bytes")
    imports: tuple[ImportSpecifier, ...] = ()
    exports: tuple[str, ...] = ()


class ScanCache:
    """Extracted declarations from a previous run.

    Lookups are read-only and safe to call from scanner worker threads;
    ``store`` and ``save`` are called by the pipeline after the scan.
    """

    def __init__(
        self, path: Path, entries: dict[str, CacheEntry] | None = None
    ) -> None:
        self.path = path
        self._entries: dict[str, CacheEntry] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> ScanCache:
        if not path.is_file():
            return cls(path)
        try:
            payload = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache %s: %s", path, exc)
            return cls(path)
        version = payload.get("version") if isinstance(payload, dict) else None
        if version != CACHE_SCHEMA_VERSION:
            logger.warning("Ignoring cache %s with unknown schema version", path)
            return cls(path)
        raw_entries = payload.get("files")
        if not isinstance(raw_entries, dict):
            logger.warning("Ignoring malformed cache %s", path)
            return cls(path)

        entries: dict[str, CacheEntry] = {}
        for relpath, raw in raw_entries.items():
            try:
                entries[relpath] = CacheEntry.model_validate(raw)
            except ValidationError as exc:
                logger.debug(
                    "Dropping invalid cache entry for %s: %d error(s)",
                    relpath,
                    exc.error_count(),
                )
        return cls(path, entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, relpath: str, digest: str) -> Declarations | None:
        entry = self._entries.get(relpath)
        if entry is None or entry.sha256 != digest:
            return None
        return Declarations(imports=entry.imports, exports=entry.exports)

    def store(self, relpath: str, digest: str, declarations: Declarations) -> None:
        self._entries[relpath] = CacheEntry(
            sha256=digest,
            imports=declarations.imports,
            exports=declarations.exports,
        )

    def prune(self, keep: set[str]) -> None:
        """Drop entries for files that no longer exist."""
        for relpath in set(self._entries) - keep:
            del self._entries[relpath]

    def save(self) -> None:
        files = {
            relpath: entry.model_dump(mode="json")
            for relpath, entry in self._entries.items()
        }
        payload = {"version": CACHE_SCHEMA_VERSION, "files": files}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        opts = orjson.OPT_SORT_KEYS
        self.path.write_bytes(orjson.dumps(payload, option=opts))


__all__ = ["CACHE_SCHEMA_VERSION", "CacheEntry", "ScanCache", "content_digest"]

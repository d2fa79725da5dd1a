"""Parallel source scanning: read files and extract their declarations."""

from __future__ import annotations

import logging
import posixpath
import random
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

from models.source import ParseWarning, SourceFile
from parse.treesitter_declarations import (
    Declarations,
    ParseError,
    extract_declarations,
    grammar_for_path,
)
from scan.cache import content_digest
from scan.files import find_source_files
from utils import relative_posix

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import LayerGuardConfig
    from scan.cache import ScanCache

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 0.05


@dataclass(frozen=True)
class ScanResult:
    """Every successfully scanned file, sorted by path, plus warnings."""

    root: Path
    files: tuple[SourceFile, ...]
    warnings: tuple[ParseWarning, ...] = ()
    digests: dict[str, str] = field(default_factory=dict)
    fresh: dict[str, Declarations] = field(default_factory=dict)

    def by_path(self) -> dict[str, SourceFile]:
        return {source.path: source for source in self.files}

    @property
    def paths(self) -> frozenset[str]:
        return frozenset(source.path for source in self.files)


@dataclass(frozen=True)
class _FileOutcome:
    path: str
    source: SourceFile | None = None
    warning: ParseWarning | None = None
    digest: str | None = None
    fresh: Declarations | None = None


def _read_with_retry(path: Path, attempts: int, delay: float) -> bytes:
    """Read a file, retrying transient OS errors before giving up."""
    for attempt in range(1, attempts + 1):
        try:
            return path.read_bytes()
        except OSError as exc:
            if attempt == attempts:
                raise
            logger.debug(
                "Retrying read of %s (attempt %d/%d): %s", path, attempt, attempts, exc
            )
            time.sleep(delay * attempt)
    raise AssertionError


def _scan_file(
    path: Path,
    *,
    root: Path,
    attempts: int,
    delay: float,
    cache: ScanCache | None,
) -> _FileOutcome:
    relpath = relative_posix(path, root)
    try:
        data = _read_with_retry(path, attempts, delay)
    except OSError as exc:
        message = f"unreadable after {attempts} attempts: {exc.strerror or exc}"
        warning = ParseWarning(path=relpath, message=message)
        return _FileOutcome(relpath, warning=warning)

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return _FileOutcome(
            relpath, warning=ParseWarning(path=relpath, message="not valid UTF-8")
        )

    digest = content_digest(data)
    declarations = cache.lookup(relpath, digest) if cache is not None else None
    fresh: Declarations | None = None
    if declarations is None:
        try:
            declarations = extract_declarations(
                text, grammar=grammar_for_path(relpath)
            )
        except ParseError as exc:
            return _FileOutcome(
                relpath,
                warning=ParseWarning(path=relpath, message=exc.message, line=exc.line),
            )
        fresh = declarations

    source = SourceFile(
        path=relpath,
        absolute_path=str(path),
        text=text,
        imports=declarations.imports,
        exports=declarations.exports,
    )
    return _FileOutcome(relpath, source=source, digest=digest, fresh=fresh)


def scan_project(
    root: Path,
    config: LayerGuardConfig,
    *,
    cache: ScanCache | None = None,
    retry_delay: float = RETRY_DELAY_SECONDS,
    shuffle_seed: int | None = None,
) -> ScanResult:
    """Scan ``root`` and extract declarations from every source file.

    Files are read and parsed in a thread pool; the merged result is
    sorted by relative path, so completion order never leaks into the
    output. Files that cannot be read or parsed become ParseWarnings
    and are left out of ``files``.

    ``shuffle_seed`` permutes the order files are handed to the pool; the
    result must not change.
    """
    skip_paths = [posixpath.dirname(config.cache.path)] if config.cache.path else []
    paths = list(
        find_source_files(
            root,
            extensions=config.extensions,
            ignore_dirs=config.ignore_dirs,
            skip_paths=skip_paths,
            include_patterns=config.include,
            exclude_patterns=config.exclude,
            nested_gitignore=config.nested_gitignore,
        )
    )
    if shuffle_seed is not None:
        random.Random(shuffle_seed).shuffle(paths)
    logger.debug("Scanning %d source files under %s", len(paths), root)

    scan_one = partial(
        _scan_file,
        root=root,
        attempts=config.scan.read_retries,
        delay=retry_delay,
        cache=cache,
    )
    with ThreadPoolExecutor(max_workers=config.scan.workers) as executor:
        outcomes = list(executor.map(scan_one, paths))

    outcomes.sort(key=lambda outcome: outcome.path)

    files: list[SourceFile] = []
    warnings: list[ParseWarning] = []
    digests: dict[str, str] = {}
    fresh: dict[str, Declarations] = {}
    for outcome in outcomes:
        if outcome.warning is not None:
            logger.warning(
                "%s: %s", outcome.warning.location(), outcome.warning.message
            )
            warnings.append(outcome.warning)
            continue
        if outcome.source is None:
            continue
        files.append(outcome.source)
        if outcome.digest is not None:
            digests[outcome.path] = outcome.digest
        if outcome.fresh is not None:
            fresh[outcome.path] = outcome.fresh

    if cache is not None:
        logger.debug(
            "Declaration cache: %d of %d files reused",
            len(files) - len(fresh),
            len(files),
        )

    return ScanResult(
        root=root,
        files=tuple(files),
        warnings=tuple(warnings),
        digests=digests,
        fresh=fresh,
    )


__all__ = ["ScanResult", "scan_project"]

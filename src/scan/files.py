"""File discovery for layerguard."""

from __future__ import annotations

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


def _should_include_file(
    path: Path,
    directory: Path,
    extensions: tuple[str, ...],
    gitignore_matches: Callable[[str], bool] | None,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a file should be included based on all filtering rules."""
    if not path.name.endswith(extensions):
        return False

    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, directory):
        return False

    try:
        rel_path = path.relative_to(directory)
    except ValueError:
        return False

    rel_path_str = rel_path.as_posix()

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    if include_patterns and not any(
        fnmatch(rel_path_str, pat) for pat in include_patterns
    ):
        return False

    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _iter_gitignore_files(root: Path, ignore_dirs: frozenset[str]) -> list[Path]:
    """Return sorted list of .gitignore files under root (including root)."""
    gitignore_paths = [root / ".gitignore"]
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in ignore_dirs]
        if ".gitignore" in filenames:
            gitignore_paths.append(Path(dirpath) / ".gitignore")
    unique_paths = {
        path for path in gitignore_paths if path.is_file() and not path.is_symlink()
    }
    return sorted(unique_paths, key=lambda p: p.relative_to(root).as_posix())


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
    ignore_dirs: frozenset[str] = frozenset(),
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = _iter_gitignore_files(root, ignore_dirs)
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def find_source_files(
    directory: Path,
    *,
    extensions: list[str] | tuple[str, ...],
    ignore_dirs: list[str] | tuple[str, ...] = (),
    skip_paths: list[str] | tuple[str, ...] = (),
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find all source files in a directory, respecting .gitignore.

    Args:
        directory: Directory to search for source files
        extensions: File suffixes that count as source files
        ignore_dirs: Directory names never descended into
            (dependency and build output directories)
        skip_paths: Relative directory paths to skip (e.g. the cache dir)
        include_patterns: Optional list of fnmatch patterns; if provided,
            files must match at least one pattern to be included
        exclude_patterns: Optional list of fnmatch patterns; files matching
            any pattern are excluded
        nested_gitignore: Compose every .gitignore under the root instead
            of only the root one

    Yields:
        Path objects for each source file found, sorted lexicographically
        by relative path for deterministic ordering.
    """
    ignored = frozenset(ignore_dirs)
    skipped = {p.strip("/") for p in skip_paths if p.strip("/")}
    suffixes = tuple(extensions)
    gitignore_matches = _build_gitignore_matcher(
        directory,
        nested_gitignore=nested_gitignore,
        ignore_dirs=ignored,
    )

    matched_files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        current = Path(dirpath)
        rel_dir = current.relative_to(directory).as_posix()
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d not in ignored
            and not (current / d).is_symlink()
            and (f"{rel_dir}/{d}" if rel_dir != "." else d) not in skipped
        )
        matched_files.extend(
            current / name
            for name in filenames
            if _should_include_file(
                current / name,
                directory,
                suffixes,
                gitignore_matches,
                include_patterns,
                exclude_patterns,
            )
        )

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


__all__ = ["_build_gitignore_matcher", "_should_include_file", "find_source_files"]

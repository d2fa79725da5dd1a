"""Shared path utilities for layerguard."""

from __future__ import annotations

import posixpath
from pathlib import Path


def normalize_relpath(file_path: str | Path) -> str:
    """Normalize a relative path to a canonical POSIX form.

    Examples:
        >>> normalize_relpath("src\\\\modules\\\\auth\\\\index.ts")
        'src/modules/auth/index.ts'
        >>> normalize_relpath("./core/../shared/x.ts")
        'shared/x.ts'
        >>> normalize_relpath(Path("routes/home.tsx"))
        'routes/home.tsx'
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    normalized = posixpath.normpath(path_str.replace("\\", "/"))
    return "" if normalized == "." else normalized


def relative_posix(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` as a POSIX string."""
    return path.relative_to(root).as_posix()


def split_extension(
    path: str, extensions: list[str] | tuple[str, ...]
) -> tuple[str, str]:
    """Split a known source extension off ``path``.

    Longest extension wins so that '.d.ts' style suffixes can be configured.

    Examples:
        >>> split_extension("modules/cart/index.ts", [".ts", ".tsx"])
        ('modules/cart/index', '.ts')
        >>> split_extension("styles/app.css", [".ts"])
        ('styles/app.css', '')
    """
    for ext in sorted(extensions, key=len, reverse=True):
        if path.endswith(ext) and len(path) > len(ext):
            return path[: -len(ext)], ext
    return path, ""


def file_stem(path: str, extensions: list[str] | tuple[str, ...]) -> str:
    """Basename of ``path`` without its source extension."""
    base, _ext = split_extension(posixpath.basename(path), extensions)
    return base


def escapes_root(relpath: str) -> bool:
    return relpath == ".." or relpath.startswith("../") or relpath.startswith("/")

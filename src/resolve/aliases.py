"""Import specifier resolution: relative paths, path aliases, packages."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rules.config import ConfigurationError
from utils import escapes_root, normalize_relpath

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from models.graph import ExternalReason

# Specifier suffixes that TypeScript maps back onto source extensions.
_JS_SUFFIXES = (".js", ".jsx", ".mjs", ".cjs")

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True)
class ResolvedSpecifier:
    """Where an import specifier points: a scanned file or an external reason."""

    path: str | None
    reason: ExternalReason | None = None

    @property
    def is_internal(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class AliasRule:
    """One path-alias entry, tsconfig 'paths' style or plain prefix style."""

    pattern: str
    targets: tuple[str, ...]

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.pattern

    @property
    def specificity(self) -> int:
        return len(self.pattern.replace("*", ""))

    def expand(self, specifier: str) -> list[str] | None:
        """Return the target paths for ``specifier``, or None when unmatched."""
        if self.is_wildcard:
            prefix, suffix = self.pattern.split("*")
            if (
                len(specifier) >= len(prefix) + len(suffix)
                and specifier.startswith(prefix)
                and specifier.endswith(suffix)
            ):
                captured = specifier[len(prefix) : len(specifier) - len(suffix)]
                return [target.replace("*", captured) for target in self.targets]
            return None

        if specifier == self.pattern:
            return list(self.targets)
        key = self.pattern if self.pattern.endswith("/") else f"{self.pattern}/"
        if specifier.startswith(key):
            rest = specifier[len(key) :]
            return [
                f"{target.rstrip('/')}/{rest}" if target.rstrip("/") else rest
                for target in self.targets
            ]
        return None


def _clean_target(target: str) -> str:
    cleaned = target.replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned


def build_alias_rules(root: Path, aliases: dict[str, list[str]]) -> list[AliasRule]:
    """Validate the alias table and return its rules, most specific first.

    Raises:
        ConfigurationError: If a pattern or target is malformed, a target
            escapes the root, or none of an alias's targets exist.
    """
    rules: list[AliasRule] = []
    for pattern, raw_targets in aliases.items():
        if not pattern:
            msg = "alias patterns must be non-empty"
            raise ConfigurationError(msg)
        if pattern.count("*") > 1:
            msg = f"alias '{pattern}' may contain at most one '*'"
            raise ConfigurationError(msg)

        targets = tuple(_clean_target(t) for t in raw_targets)
        for target in targets:
            if target.count("*") > 1:
                msg = f"alias '{pattern}' target '{target}' may contain at most one '*'"
                raise ConfigurationError(msg)
            if ("*" in pattern) != ("*" in target):
                msg = (
                    f"alias '{pattern}' and its target '{target}' must both "
                    "use a '*' wildcard or neither"
                )
                raise ConfigurationError(msg)
            if target.startswith(("/", "~")) or escapes_root(
                normalize_relpath(target.replace("*", "x"))
            ):
                msg = f"alias '{pattern}' target '{target}' must stay within the root"
                raise ConfigurationError(msg)

        if not any(_target_exists(root, target) for target in targets):
            msg = (
                f"alias '{pattern}' cannot be resolved: none of "
                f"{', '.join(repr(t) for t in targets)} exist under {root}"
            )
            raise ConfigurationError(msg)

        rules.append(AliasRule(pattern=pattern, targets=targets))

    rules.sort(key=lambda rule: (-rule.specificity, rule.pattern))
    return rules


def _target_exists(root: Path, target: str) -> bool:
    if "*" in target:
        base = target.split("*", 1)[0]
        directory = base.rstrip("/") if base.endswith("/") else posixpath.dirname(base)
        return (root / directory).is_dir() if directory else root.is_dir()
    path = root / target.rstrip("/")
    if path.exists():
        return True
    parent = path.parent
    return parent.is_dir() and any(
        child.name.startswith(f"{path.name}.") for child in parent.iterdir()
    )


class SpecifierResolver:
    """Resolve import specifiers to scanned files.

    Args:
        root: Project root.
        aliases: Alias table from the configuration.
        extensions: Source extensions, in resolution priority order.
        source_paths: Relative paths of every scanned file.
        barrel: Barrel stem pattern; a literal name is also tried as a
            directory index.
    """

    def __init__(
        self,
        root: Path,
        aliases: dict[str, list[str]],
        *,
        extensions: list[str] | tuple[str, ...],
        source_paths: frozenset[str],
        barrel: str = "index",
    ) -> None:
        self.root = root
        self.rules = build_alias_rules(root, aliases)
        self.extensions = tuple(extensions)
        self.source_paths = source_paths
        self.index_names = ["index"]
        if barrel != "index" and not (_GLOB_CHARS & set(barrel)):
            self.index_names.append(barrel)

    def resolve(self, specifier: str, importer: str) -> ResolvedSpecifier:
        """Resolve ``specifier`` as imported from the file ``importer``."""
        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            joined = posixpath.join(posixpath.dirname(importer), specifier)
            return self._resolve_bases([joined])

        for rule in self.rules:
            expanded = rule.expand(specifier)
            if expanded is not None:
                return self._resolve_bases(expanded)

        if specifier.startswith("/"):
            return ResolvedSpecifier(path=None, reason="unresolved")
        return ResolvedSpecifier(path=None, reason="package")

    def _resolve_bases(self, bases: list[str]) -> ResolvedSpecifier:
        on_disk = False
        for raw_base in bases:
            base = normalize_relpath(raw_base)
            if escapes_root(base):
                continue
            for candidate in self._candidates(base):
                if candidate in self.source_paths:
                    return ResolvedSpecifier(path=candidate)
                if not on_disk and candidate and (self.root / candidate).is_file():
                    on_disk = True
        reason = "unscanned" if on_disk else "unresolved"
        return ResolvedSpecifier(path=None, reason=reason)

    def _candidates(self, base: str) -> Iterator[str]:
        if base:
            yield base
            for ext in self.extensions:
                yield f"{base}{ext}"
            for suffix in _JS_SUFFIXES:
                if base.endswith(suffix):
                    stem = base[: -len(suffix)]
                    for ext in self.extensions:
                        yield f"{stem}{ext}"
        prefix = f"{base}/" if base else ""
        for name in self.index_names:
            for ext in self.extensions:
                yield f"{prefix}{name}{ext}"


__all__ = [
    "AliasRule",
    "ResolvedSpecifier",
    "SpecifierResolver",
    "build_alias_rules",
]

"""Module resolution: assign scanned files to layered modules.

Each file is classified through the layer map into exactly one module (or
left unassigned), and every module's barrel file is located so that its
public surface can be computed.
"""

from __future__ import annotations

import logging
import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import TYPE_CHECKING

from models.modules import Module, UnassignedFile
from models.source import DEFAULT_SYMBOL
from rules.layers import LayerMatch, classify_layer
from utils import file_stem, split_extension

if TYPE_CHECKING:
    from models.source import ParseWarning, SourceFile
    from resolve.aliases import SpecifierResolver
    from rules.config import LayerGuardConfig
    from scan.scanner import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModuleMap:
    """The Resolver's output: modules, file ownership and unassigned files."""

    modules: tuple[Module, ...]
    file_module: dict[str, str]
    sources: dict[str, SourceFile]
    unassigned: tuple[UnassignedFile, ...] = ()
    parse_warnings: tuple[ParseWarning, ...] = ()
    module_index: dict[str, Module] = field(default_factory=dict)

    def module_of(self, path: str) -> Module | None:
        module_id = self.file_module.get(path)
        if module_id is None:
            return None
        return self.module_index[module_id]


def find_barrel(
    module_dirs: tuple[str, ...],
    files: list[str],
    pattern: str,
    extensions: list[str] | tuple[str, ...],
) -> str | None:
    """Return the barrel file at the module root, if any.

    Candidates are files directly inside one of ``module_dirs`` whose stem
    matches ``pattern``; the one whose extension comes first in ``extensions``
    wins.
    """
    candidates = [
        path
        for path in files
        if posixpath.dirname(path) in module_dirs
        and split_extension(path, extensions)[1]
        and fnmatch(file_stem(path, extensions), pattern)
    ]
    if not candidates:
        return None

    def priority(path: str) -> tuple[int, str]:
        ext = split_extension(path, extensions)[1]
        return (list(extensions).index(ext), path)

    candidates.sort(key=priority)
    if len(candidates) > 1:
        logger.debug(
            "Module %s has several barrel candidates, using %s",
            ", ".join(d or "." for d in module_dirs),
            candidates[0],
        )
    return candidates[0]


def compute_public_surface(
    barrel: str,
    sources: dict[str, SourceFile],
    specifiers: SpecifierResolver,
    _visiting: frozenset[str] = frozenset(),
) -> set[str]:
    """Names exported by ``barrel``, following 'export * from' re-exports.

    A star re-export forwards every name except 'default'. Re-export cycles
    are cut at the first repeated file.
    """
    source = sources.get(barrel)
    if source is None:
        return set()

    visiting = _visiting | {barrel}
    surface = set(source.exports)
    for spec in source.imports:
        if not spec.reexport_all:
            continue
        target = specifiers.resolve(spec.specifier, barrel).path
        if target is None or target in visiting:
            continue
        forwarded = compute_public_surface(target, sources, specifiers, visiting)
        surface |= forwarded - {DEFAULT_SYMBOL}
    return surface


def resolve_modules(
    scan: ScanResult,
    config: LayerGuardConfig,
    specifiers: SpecifierResolver,
) -> ModuleMap:
    """Assign every scanned file to a module and compute public surfaces.

    Raises:
        ConfigurationError: If a file is claimed by two layers.
    """
    sources = scan.by_path()
    grouped: dict[str, list[str]] = defaultdict(list)
    matches: dict[str, LayerMatch] = {}
    unassigned: list[UnassignedFile] = []

    for source in scan.files:
        match = classify_layer(source.path, config)
        if match is None:
            unassigned.append(
                UnassignedFile(
                    path=source.path, reason="matches no layer in the layer map"
                )
            )
            continue
        if match.module_id is None:
            unassigned.append(
                UnassignedFile(
                    path=source.path,
                    reason=(
                        f"lies directly under '{match.prefix}' of layer "
                        f"'{match.layer.name}' instead of inside a module directory"
                    ),
                )
            )
            continue
        grouped[match.module_id].append(source.path)
        matches.setdefault(match.module_id, match)

    for item in unassigned:
        logger.debug("Unassigned file %s: %s", item.path, item.reason)
    if unassigned:
        logger.warning(
            "%d file(s) matched no module and are excluded from rule checks",
            len(unassigned),
        )

    modules: list[Module] = []
    file_module: dict[str, str] = {}
    warned_paths = [warning.path for warning in scan.warnings]
    for module_id in sorted(grouped):
        match = matches[module_id]
        files = sorted(grouped[module_id])
        barrel = find_barrel(
            match.module_dirs, files, config.barrel, config.extensions
        )
        unparsable_barrel = None
        if barrel is None:
            unparsable_barrel = find_barrel(
                match.module_dirs, warned_paths, config.barrel, config.extensions
            )
        surface = (
            compute_public_surface(barrel, sources, specifiers) if barrel else set()
        )
        module = Module(
            id=module_id,
            name=match.module_name or module_id,
            layer=match.layer.kind,
            layer_name=match.layer.name,
            files=tuple(files),
            barrel=barrel,
            unparsable_barrel=unparsable_barrel,
            public_surface=tuple(sorted(surface)),
        )
        modules.append(module)
        for path in files:
            file_module[path] = module_id
        logger.debug(
            "Module %s (%s): %d files, barrel=%s, %d public symbols",
            module.id,
            module.layer_name,
            len(files),
            barrel,
            len(surface),
        )

    return ModuleMap(
        modules=tuple(modules),
        file_module=file_module,
        sources=sources,
        unassigned=tuple(unassigned),
        parse_warnings=scan.warnings,
        module_index={module.id: module for module in modules},
    )


__all__ = [
    "ModuleMap",
    "compute_public_surface",
    "find_barrel",
    "resolve_modules",
]

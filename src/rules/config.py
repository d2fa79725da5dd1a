from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.modules import Layer

CONFIG_FILENAME = "layerguard.toml"

DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts"]

DEFAULT_IGNORE_DIRS = [
    "node_modules",
    "dist",
    "build",
    "out",
    "coverage",
    ".git",
    ".next",
    ".nuxt",
    ".svelte-kit",
]

SeverityName = Literal["error", "warning"]


class ConfigurationError(Exception):
    """Raised when the configuration cannot drive an analysis run."""


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class LayerDef(_StrictModel):
    """Definition of a single architectural layer."""

    name: str = Field(description="Layer name (e.g., 'shared', 'modules')")
    kind: Layer = Field(description="Layer kind used for the default import order")
    prefixes: list[str] = Field(
        description="Directory prefixes, relative to the root, owned by this layer"
    )
    split: bool | None = Field(
        default=None,
        description="One module per first sub-directory (default: true for feature)",
    )
    may_import: list[str] | None = Field(
        default=None,
        description="Layer names this layer may depend on (default: documented order)",
    )

    @field_validator("prefixes")
    @classmethod
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        if not v:
            msg = "a layer needs at least one prefix"
            raise ValueError(msg)
        for prefix in v:
            if prefix.startswith(("/", "~")) or ".." in prefix.split("/"):
                msg = f"prefix '{prefix}' must be a relative path within the root"
                raise ValueError(msg)
        return v

    @property
    def splits_modules(self) -> bool:
        if self.split is not None:
            return self.split
        if any(_is_wildcard_prefix(p) for p in self.prefixes):
            return True
        return self.kind is Layer.FEATURE

    def normalized_prefixes(self) -> list[str]:
        """Prefixes as 'dir/sub/' strings, wildcard suffixes removed."""
        return [_normalize_prefix(p) for p in self.prefixes]


class SeverityConfig(_StrictModel):
    """Severity assigned to each violation kind."""

    layer_direction: SeverityName = "error"
    deep_import: SeverityName = "error"
    cycle: SeverityName = "error"


class ScanConfig(_StrictModel):
    """Tuning for the parallel file scan."""

    workers: int | None = Field(
        default=None,
        ge=1,
        description="Worker threads for reading files (default: executor default)",
    )
    read_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per file before it is reported as unreadable",
    )


class CacheConfig(_StrictModel):
    """Incremental declaration cache, keyed by file content hash."""

    enabled: bool = False
    path: str = Field(default=".layerguard/cache.json")


def _default_layers() -> list[LayerDef]:
    return [
        LayerDef(name="shared", kind=Layer.SHARED, prefixes=["shared/", "src/shared/"]),
        LayerDef(name="core", kind=Layer.CORE, prefixes=["core/", "src/core/"]),
        LayerDef(
            name="modules",
            kind=Layer.FEATURE,
            prefixes=["modules/*/", "src/modules/*/"],
        ),
        LayerDef(name="routes", kind=Layer.ROUTE, prefixes=["routes/", "src/routes/"]),
    ]


def _default_aliases() -> dict[str, list[str]]:
    return {"@/*": ["src/*", "*"]}


class LayerGuardConfig(_StrictModel):
    """Configuration for one analysis run."""

    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all source files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    ignore_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    nested_gitignore: bool = Field(
        default=False,
        description="Enable nested .gitignore composition (default: root only)",
    )
    barrel: str = Field(
        default="index",
        description="fnmatch pattern for the barrel file stem at a module root",
    )
    fail_on: SeverityName = "error"
    aliases: dict[str, list[str]] = Field(default_factory=_default_aliases)
    layers: list[LayerDef] = Field(default_factory=_default_layers)
    severity: SeverityConfig = Field(default_factory=SeverityConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("aliases", mode="before")
    @classmethod
    def validate_aliases(cls, v: Any) -> Any:
        """Accept 'key = "target"' as shorthand for a one-element list."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            msg = "aliases must be a mapping of pattern -> target(s)"
            raise TypeError(msg)
        normalized: dict[str, list[str]] = {}
        for key, targets in v.items():
            if isinstance(targets, str):
                targets = [targets]
            if not isinstance(key, str) or not isinstance(targets, list):
                msg = "aliases must be a mapping of str -> str | list[str]"
                raise TypeError(msg)
            if not targets:
                msg = f"alias '{key}' has no targets"
                raise ValueError(msg)
            normalized[key] = targets
        return normalized

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        for ext in v:
            if not ext.startswith("."):
                msg = f"extension '{ext}' must start with '.'"
                raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_layer_map(self) -> LayerGuardConfig:
        names = [layer.name for layer in self.layers]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"duplicate layer names: {', '.join(duplicates)}"
            raise ValueError(msg)
        known = set(names)
        for layer in self.layers:
            unknown = sorted(set(layer.may_import or []) - known)
            if unknown:
                msg = (
                    f"layer '{layer.name}' may_import references unknown "
                    f"layers: {', '.join(unknown)}"
                )
                raise ValueError(msg)
        return self

    def severity_for(self, kind: str) -> SeverityName:
        return {
            "LayerDirection": self.severity.layer_direction,
            "DeepImport": self.severity.deep_import,
            "Cycle": self.severity.cycle,
        }[kind]


def _is_wildcard_prefix(prefix: str) -> bool:
    return prefix.rstrip("/").endswith("*")


def _normalize_prefix(prefix: str) -> str:
    cleaned = prefix.replace("\\", "/").strip()
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    cleaned = cleaned.rstrip("/")
    if cleaned.endswith("*"):
        cleaned = cleaned[:-1].rstrip("/")
    return f"{cleaned}/" if cleaned else ""


def resolve_within_root(root: Path, relative: str, *, what: str) -> Path:
    """Resolve a config-provided path safely within the repo root.

    The path must be a non-empty relative path that remains within the
    repository root after resolution. Absolute paths and paths that escape
    the root are rejected.
    """
    if not relative:
        msg = f"{what} must be a non-empty relative path"
        raise ConfigurationError(msg)

    if relative.startswith("~"):
        msg = f"{what} must be a relative path within the repo root"
        raise ConfigurationError(msg)

    rel_path = Path(relative)
    if rel_path.is_absolute():
        msg = f"{what} must be a relative path within the repo root"
        raise ConfigurationError(msg)

    try:
        resolved_root = root.resolve()
        resolved = (resolved_root / rel_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve {what} '{relative}': {exc}"
        raise ConfigurationError(msg) from exc

    try:
        resolved.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"{what} '{relative}' escapes the repository root"
        raise ConfigurationError(msg) from exc

    return resolved


def load_config(root: Path, config_path: Path | None = None) -> LayerGuardConfig:
    """Load configuration from layerguard.toml if it exists.

    An explicit ``config_path`` must exist; the implicit root file is
    optional and the documented defaults apply without it.
    """
    if config_path is None:
        config_path = Path(root) / CONFIG_FILENAME
        if not config_path.is_file():
            return LayerGuardConfig()
    elif not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(msg)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Cannot read {config_path}: {e}"
        raise ConfigurationError(msg) from e

    return parse_config(data, source=str(config_path))


def parse_config(data: dict[str, Any], *, source: str = "<config>") -> LayerGuardConfig:
    try:
        return LayerGuardConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {source}: {e}"
        raise ConfigurationError(msg) from e


def apply_overrides(config: LayerGuardConfig, **overrides: Any) -> LayerGuardConfig:
    """Return a copy of ``config`` with the non-None overrides applied.

    List overrides for include/exclude extend the configured lists; alias
    overrides are merged over the configured table.
    """
    update: dict[str, Any] = {}
    for key in ("include", "exclude"):
        extra = overrides.get(key)
        if extra:
            update[key] = [*getattr(config, key), *extra]
    aliases = overrides.get("aliases")
    if aliases:
        update["aliases"] = {**config.aliases, **aliases}
    fail_on = overrides.get("fail_on")
    if fail_on is not None:
        update["fail_on"] = fail_on
    workers = overrides.get("workers")
    if workers is not None:
        update["scan"] = {**config.scan.model_dump(), "workers": workers}
    if not update:
        return config
    return parse_config({**config.model_dump(), **update}, source="command line")


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_IGNORE_DIRS",
    "CacheConfig",
    "ConfigurationError",
    "LayerDef",
    "LayerGuardConfig",
    "ScanConfig",
    "SeverityConfig",
    "apply_overrides",
    "load_config",
    "parse_config",
    "resolve_within_root",
]

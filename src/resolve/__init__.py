"""Module and specifier resolution for layerguard."""

from resolve.aliases import ResolvedSpecifier, SpecifierResolver
from resolve.modules import ModuleMap, resolve_modules

__all__ = ["ModuleMap", "ResolvedSpecifier", "SpecifierResolver", "resolve_modules"]

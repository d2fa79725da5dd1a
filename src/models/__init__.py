"""Data model shared by every stage of the analysis pipeline."""

from models.graph import DependencyGraph, ExternalEdge, ImportEdge, ModuleEdge
from models.modules import Layer, Module, UnassignedFile
from models.source import ImportSpecifier, ParseWarning, SourceFile
from models.violations import Summary, Violation, ViolationKind

__all__ = [
    "DependencyGraph",
    "ExternalEdge",
    "ImportEdge",
    "ImportSpecifier",
    "Layer",
    "Module",
    "ModuleEdge",
    "ParseWarning",
    "SourceFile",
    "Summary",
    "UnassignedFile",
    "Violation",
    "ViolationKind",
]

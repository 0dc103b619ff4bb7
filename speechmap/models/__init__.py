"""Shared typed data models for speechmap.

This package contains dataclasses and enums used across the text, playback,
and engine modules to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    Highlight,
    MappingEntry,
    MappingKind,
    NavigationCursor,
    RuleKind,
    Shortcut,
    ShortcutExpansion,
    SubstitutionRule,
    TransformResult,
)

__all__ = [
    "Highlight",
    "MappingEntry",
    "MappingKind",
    "NavigationCursor",
    "RuleKind",
    "Shortcut",
    "ShortcutExpansion",
    "SubstitutionRule",
    "TransformResult",
]

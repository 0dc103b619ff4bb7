"""Text transformation and navigation building blocks.

This package provides the pronunciation transformer, the written/spoken
position map, markup sanitizing, boundary scans, and typing-time helpers.
"""

from .capture import paragraph_before_caret, word_before_caret
from .position_map import PositionMap, PositionMapBuilder
from .sanitizer import MarkupSanitizer, sanitize_markup
from .shortcuts import ShortcutExpander
from .transformer import TextTransformer

__all__ = [
    "MarkupSanitizer",
    "PositionMap",
    "PositionMapBuilder",
    "ShortcutExpander",
    "TextTransformer",
    "paragraph_before_caret",
    "sanitize_markup",
    "word_before_caret",
]

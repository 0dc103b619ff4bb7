"""Top-level package for speechmap.

This package rewrites written text into speakable markup using pronunciation
rules, keeps a position map between the two, and navigates playback so an editor
can highlight the word being spoken. The main entry points are `TextTransformer`
and `PlaybackNavigator`.
"""

from .playback.navigator import PlaybackNavigator
from .text.transformer import TextTransformer

__all__ = ["PlaybackNavigator", "TextTransformer", "__version__"]

__version__ = "0.1.0"

"""
Content module - Building, theme and narrative generation.

Provides:
- ContentGenerator: Interface the drivers call asynchronously
- ProceduralContentGenerator: Seeded offline implementation
- ContentGenerationError: Recoverable generation failure
"""

from .generator import (
    ContentGenerator,
    ContentGenerationError,
    ProceduralContentGenerator,
    ThemeData,
)

__all__ = [
    "ContentGenerator",
    "ContentGenerationError",
    "ProceduralContentGenerator",
    "ThemeData",
]

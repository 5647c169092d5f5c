"""Pure path derivation helpers."""

from .path_resolver import PathResolver
from .sanitizer import Sanitizer

__all__ = ["PathResolver", "Sanitizer"]

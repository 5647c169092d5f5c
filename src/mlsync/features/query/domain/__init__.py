"""Bang vocabulary and syntax tree for queries."""

from .ast import And, MatchAll, Node, Or, Term
from .bangs import BANGS, FORMAT_SELECTORS, BangSpec, FormatSelector, ValueKind

__all__ = [
    "And",
    "BANGS",
    "BangSpec",
    "FORMAT_SELECTORS",
    "FormatSelector",
    "MatchAll",
    "Node",
    "Or",
    "Term",
    "ValueKind",
]

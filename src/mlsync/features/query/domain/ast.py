"""Syntax tree produced by the query parser."""

from __future__ import annotations

from dataclasses import dataclass

from .bangs import BangSpec, FormatSelector


@dataclass(frozen=True, slots=True)
class MatchAll:
    """``*``: every track."""

    position: int = 0


@dataclass(frozen=True, slots=True)
class Term:
    """One bang with its already-typed value."""

    spec: BangSpec
    value: str | int | bool | FormatSelector
    position: int


@dataclass(frozen=True, slots=True)
class And:
    left: "Node"
    right: "Node"


@dataclass(frozen=True, slots=True)
class Or:
    left: "Node"
    right: "Node"


Node = MatchAll | Term | And | Or

__all__ = ["And", "MatchAll", "Node", "Or", "Term"]

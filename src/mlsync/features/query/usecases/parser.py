"""Where: features/query/usecases/parser.py
What: Recursive-descent parser from tokens to a typed syntax tree.
Why: Reject malformed queries before anything is evaluated.

Grammar::

    expr   := and ( "||" and )*
    and    := unary ( "&&" unary )*
    unary  := "(" expr ")" | "*" | term
    term   := "!" NAME value

``&&`` binds tighter than ``||``; both associate to the left.
"""

from __future__ import annotations

import re
from typing import Final, final

from mlsync.features.query.domain.ast import And, MatchAll, Node, Or, Term
from mlsync.features.query.domain.bangs import (
    BANGS,
    FORMAT_SELECTORS,
    NUMERIC_PREFIXES,
    BangSpec,
    FormatSelector,
    ValueKind,
)
from mlsync.shared.errors import QuerySyntaxError

from .lexer import Token, TokenType, tokenize

_INTEGER: Final[re.Pattern[str]] = re.compile(r"[+-]?\d+")


@final
class Parser:
    """Parse one token list; instances are single-use."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens: list[Token] = tokens
        self.index: int = 0

    def parse(self) -> Node:
        first = self._peek()
        if first.type is TokenType.END:
            raise QuerySyntaxError("empty query", first.position)
        node = self._expr()
        trailing = self._peek()
        if trailing.type is TokenType.RPAREN:
            raise QuerySyntaxError("unbalanced ')'", trailing.position, trailing.text)
        if trailing.type is not TokenType.END:
            raise QuerySyntaxError("expected '&&' or '||'", trailing.position, trailing.text)
        return node

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.type is not TokenType.END:
            self.index += 1
        return token

    def _expr(self) -> Node:
        node = self._and()
        while self._peek().type is TokenType.OR:
            _ = self._advance()
            node = Or(node, self._and())
        return node

    def _and(self) -> Node:
        node = self._unary()
        while self._peek().type is TokenType.AND:
            _ = self._advance()
            node = And(node, self._unary())
        return node

    def _unary(self) -> Node:
        token = self._advance()
        if token.type is TokenType.LPAREN:
            node = self._expr()
            closing = self._advance()
            if closing.type is TokenType.END:
                raise QuerySyntaxError("unbalanced '('", token.position, token.text)
            if closing.type is not TokenType.RPAREN:
                raise QuerySyntaxError("expected ')'", closing.position, closing.text)
            return node
        if token.type is TokenType.STAR:
            return MatchAll(token.position)
        if token.type is TokenType.BANG:
            return self._term(token)
        if token.type is TokenType.END:
            raise QuerySyntaxError("unexpected end of input", token.position)
        raise QuerySyntaxError("expected a bang term", token.position, token.text)

    def _term(self, bang: Token) -> Term:
        spec = BANGS.get(bang.text)
        if spec is None:
            if bang.text in NUMERIC_PREFIXES:
                raise QuerySyntaxError(
                    f"'!{bang.text}' needs an 'lt' or 'gt' suffix", bang.position, "!" + bang.text
                )
            raise QuerySyntaxError(f"unknown bang '!{bang.text}'", bang.position, "!" + bang.text)

        if self._peek().type is not TokenType.VALUE:
            raise QuerySyntaxError(f"missing value for '!{spec.name}'", bang.position, "!" + bang.text)
        value_token = self._advance()
        return Term(spec, _convert(spec, value_token), bang.position)


def _convert(spec: BangSpec, token: Token) -> str | int | bool | FormatSelector:
    raw = token.text
    if spec.kind is ValueKind.TEXT:
        if not raw.strip():
            raise QuerySyntaxError(f"empty value for '!{spec.name}'", token.position, raw)
        return raw.casefold()
    if spec.kind is ValueKind.INTEGER:
        if not _INTEGER.fullmatch(raw):
            raise QuerySyntaxError(f"'!{spec.name}' expects an integer", token.position, raw)
        return int(raw)
    if spec.kind is ValueKind.BOOLEAN:
        lowered = raw.lower()
        if lowered not in ("true", "false"):
            raise QuerySyntaxError(f"'!{spec.name}' expects true or false", token.position, raw)
        return lowered == "true"
    selector = FORMAT_SELECTORS.get(raw.lower())
    if selector is None:
        raise QuerySyntaxError(f"unknown format '{raw}'", token.position, raw)
    return selector


def parse(source: str) -> Node:
    """Tokenize and parse ``source``.

    Raises:
        QuerySyntaxError: With the 0-based offset of the offending token.
    """
    return Parser(tokenize(source)).parse()


__all__ = ["Parser", "parse"]

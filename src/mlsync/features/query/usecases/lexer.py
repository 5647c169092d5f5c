"""Where: features/query/usecases/lexer.py
What: Split a bang expression into positioned tokens.
Why: The parser reports errors by offset, so every token remembers where it started.

Values are read right after a bang name. A bare value runs until ``&&``,
``||``, a ``)`` that closes an open group, or the end of input, and is
trimmed. Balanced parentheses inside a bare value belong to the value. A
quoted value (``"..."`` with ``\\"`` and ``\\\\`` escapes) may hold anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import final

from mlsync.shared.errors import QuerySyntaxError


class TokenType(StrEnum):
    BANG = "bang"
    VALUE = "value"
    AND = "&&"
    OR = "||"
    LPAREN = "("
    RPAREN = ")"
    STAR = "*"
    END = "end of input"


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    text: str
    position: int


@final
class Lexer:
    """Single-use tokenizer over one expression."""

    def __init__(self, source: str) -> None:
        self.source: str = source
        self.pos: int = 0
        self.depth: int = 0
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.source):
                self.tokens.append(Token(TokenType.END, "", self.pos))
                return self.tokens

            start = self.pos
            char = self.source[start]
            pair = self.source[start : start + 2]
            if pair == "&&":
                self._emit(TokenType.AND, pair, start, advance=2)
            elif pair == "||":
                self._emit(TokenType.OR, pair, start, advance=2)
            elif char == "(":
                self.depth += 1
                self._emit(TokenType.LPAREN, char, start)
            elif char == ")":
                self.depth -= 1
                self._emit(TokenType.RPAREN, char, start)
            elif char == "*":
                self._emit(TokenType.STAR, char, start)
            elif char == "!":
                self._read_bang()
            else:
                end = start
                while end < len(self.source) and not self.source[end].isspace():
                    end += 1
                raise QuerySyntaxError("expected '!', '*' or '('", start, self.source[start:end])

    def _emit(self, type_: TokenType, text: str, start: int, advance: int = 1) -> None:
        self.tokens.append(Token(type_, text, start))
        self.pos = start + advance

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self.pos += 1

    def _read_bang(self) -> None:
        start = self.pos
        self.pos += 1
        name_start = self.pos
        while self.pos < len(self.source) and self.source[self.pos].isalpha():
            self.pos += 1
        name = self.source[name_start : self.pos]
        if not name:
            raise QuerySyntaxError("expected a bang name after '!'", start, "!")
        self.tokens.append(Token(TokenType.BANG, name, start))

        self._skip_whitespace()
        if self.pos >= len(self.source) or self._at_value_terminator(self.pos):
            return
        if self.source[self.pos] == '"':
            self._read_quoted()
        else:
            self._read_bare()

    def _at_value_terminator(self, index: int) -> bool:
        pair = self.source[index : index + 2]
        return pair in ("&&", "||") or (self.source[index] == ")" and self.depth > 0)

    def _read_quoted(self) -> None:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if char == "\\" and self.pos + 1 < len(self.source) and self.source[self.pos + 1] in '"\\':
                chars.append(self.source[self.pos + 1])
                self.pos += 2
                continue
            if char == '"':
                self.pos += 1
                self.tokens.append(Token(TokenType.VALUE, "".join(chars), start))
                return
            chars.append(char)
            self.pos += 1
        raise QuerySyntaxError("unterminated quoted value", start, self.source[start:])

    def _read_bare(self) -> None:
        start = self.pos
        local_depth = 0
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if char == "(":
                local_depth += 1
            elif char == ")":
                if local_depth > 0:
                    local_depth -= 1
                elif self.depth > 0:
                    break
            elif local_depth == 0 and self._at_value_terminator(self.pos):
                break
            self.pos += 1
        text = self.source[start : self.pos].strip()
        self.tokens.append(Token(TokenType.VALUE, text, start))


def tokenize(source: str) -> list[Token]:
    """Tokenize ``source``; the last token is always ``END``."""

    return Lexer(source).tokenize()


__all__ = ["Lexer", "Token", "TokenType", "tokenize"]

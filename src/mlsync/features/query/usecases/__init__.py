"""Query use cases: tokenizer, parser and compiler."""

from .compiler import CompiledQuery, QueryCompiler, compile_tree
from .lexer import Token, TokenType, tokenize
from .parser import parse

__all__ = ["CompiledQuery", "QueryCompiler", "Token", "TokenType", "compile_tree", "parse", "tokenize"]

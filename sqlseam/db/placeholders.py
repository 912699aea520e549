"""Placeholder scanning and rewriting.

Statements are written with ``?`` (positional) or ``:name`` (named)
placeholders. Scanning is done on the sqlparse token stream, so a ``?``
or ``:x`` inside a string literal, quoted identifier, comment or
PostgreSQL dollar-quoted body is left alone and ``::`` stays a cast.
"""
from typing import Iterator, List, NamedTuple, Optional, Tuple

import sqlparse
from sqlparse import tokens as T

TEXT = "text"
POSITIONAL = "positional"
NAMED = "named"


class Token(NamedTuple):
    kind: str
    value: str


class ParsedQuery(NamedTuple):
    """Placeholders found in a statement"""

    positional: int
    names: Tuple[str, ...]

    @property
    def count(self) -> int:
        return self.positional or len(self.names)


def _flatten(sql: str) -> Iterator[sqlparse.sql.Token]:
    # sqlparse splits on ';' but keeps every character, so chaining the
    # statements reproduces the input exactly
    for statement in sqlparse.parse(sql):
        yield from statement.flatten()


def tokenize(sql: str) -> List[Token]:
    """Split SQL into plain text and placeholders"""
    tokens = []
    for token in _flatten(sql):
        if token.ttype in T.Name.Placeholder:
            if token.value == "?":
                tokens.append(Token(POSITIONAL, "?"))
                continue
            if token.value.startswith(":"):
                tokens.append(Token(NAMED, token.value[1:]))
                continue
        tokens.append(Token(TEXT, token.value))
    return tokens


def parse(sql: str) -> ParsedQuery:
    """Count positional placeholders and collect named ones in order

    Raises ValueError when a statement mixes both styles.
    """
    positional = 0
    names = []
    for token in tokenize(sql):
        if token.kind == POSITIONAL:
            positional += 1
        elif token.kind == NAMED and token.value not in names:
            names.append(token.value)
    if positional and names:
        raise ValueError("Mixed positional and named placeholders are not supported")
    return ParsedQuery(positional, tuple(names))


def to_pyformat(sql: str) -> str:
    """Rewrite for drivers using the pyformat paramstyle (psycopg2)

    Every literal ``%`` is doubled because the driver formats the whole
    statement text when parameters are passed.
    """
    parts = []
    for token in tokenize(sql):
        if token.kind == POSITIONAL:
            parts.append("%s")
        elif token.kind == NAMED:
            parts.append(f"%({token.value})s")
        else:
            parts.append(token.value.replace("%", "%%"))
    return "".join(parts)


def to_numbered(sql: str) -> str:
    """Rewrite to ``$1, $2, ...``; a repeated name reuses its number"""
    parts = []
    positional = 0
    numbers = {}
    for token in tokenize(sql):
        if token.kind == POSITIONAL:
            positional += 1
            parts.append(f"${positional}")
        elif token.kind == NAMED:
            if token.value not in numbers:
                numbers[token.value] = len(numbers) + 1
            parts.append(f"${numbers[token.value]}")
        else:
            parts.append(token.value)
    return "".join(parts)


def leading_keyword(sql: str) -> Optional[str]:
    """First word of the statement, upper-cased, ignoring comments and parentheses"""
    for token in _flatten(sql):
        if token.is_whitespace or token.ttype in T.Comment:
            continue
        if token.ttype in T.Punctuation and token.value == "(":
            continue
        if token.is_keyword or (token.ttype in T.Name and token.ttype not in T.Name.Placeholder):
            return token.value.upper()
        return None
    return None

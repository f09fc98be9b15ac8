"""
Token helpers for the structural SQL parser.

The parser walks the token tree that ``sqlparse.parse`` builds rather
than the raw text. Two flattened views of a token list are used:

- ``items`` opens every group that holds clause structure (``Where``,
  ``IdentifierList`` and any group that swallowed a comma, a clause
  keyword or a JOIN keyword), so those appear at the top level.
  Parenthesis groups always stay closed, as do plain ``Identifier`` and
  ``Comparison`` groups.
- ``leaves`` yields every leaf token outside parentheses.

``render`` turns a run of items back into text plus a masked copy of the
same length, in which string literal bodies and sub-query bodies are
blanked. Predicate patterns run on the masked copy and values are sliced
from the text by span.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator

import sqlparse
from sqlparse import tokens as T
from sqlparse.sql import IdentifierList, Parenthesis, Statement, Token, Where

_WHITESPACE = re.compile(r"\s+")

# Keywords that start a clause, separate FROM items or split query blocks.
STRUCTURAL_KEYWORDS = frozenset({
    "SELECT", "FROM", "WHERE", "GROUP BY", "HAVING", "ORDER BY", "ORDER",
    "CONNECT", "START", "UNION", "UNION ALL", "INTERSECT", "EXCEPT", "FETCH",
    "OFFSET", "FOR", "UPDATE", "DELETE", "SET", "RETURNING", "LOG", "ON",
    "USING", "CROSS", "OUTER", "NATURAL", "CONNECT BY",
})

# Words that sqlparse may lex as plain names but that still carry structure.
_STRUCTURAL_NAMES = frozenset({"MINUS", "START", "CONNECT", "SIBLINGS", "USING", "ON"})


def normalize(sql: str) -> str:
    """
    Canonical statement text.

    Comments and optimizer hints are dropped, whitespace runs collapse to
    one space and trailing ``;`` / ``/`` terminators are removed. Keywords
    and unquoted identifiers are upper-cased; string literals and quoted
    identifiers keep their case.
    """
    pieces: list[str] = []
    for statement in sqlparse.parse(sql):
        for token in statement.flatten():
            if token.is_whitespace or token.ttype in T.Comment:
                if pieces and pieces[-1] != " ":
                    pieces.append(" ")
            elif token.ttype in T.String:
                pieces.append(token.value)
            else:
                pieces.append(_WHITESPACE.sub(" ", token.value.upper()))
    return "".join(pieces).strip().rstrip(";/ ").strip()


def parse_statement(text: str) -> Statement | None:
    """First statement of ``text``, or None when there is nothing to parse."""
    statements = sqlparse.parse(text)
    return statements[0] if statements else None


def word(token: Token) -> str:
    """Upper-cased value of a keyword or name leaf; empty for anything else."""
    if token.is_group or not (token.ttype in T.Keyword or token.ttype in T.Name):
        return ""
    return _WHITESPACE.sub(" ", token.value.upper())


def keyword(token: Token) -> str:
    """Upper-cased value of a keyword leaf; empty for anything else."""
    if token.is_group or token.ttype not in T.Keyword:
        return ""
    return _WHITESPACE.sub(" ", token.value.upper())


def is_comma(token: Token) -> bool:
    return token.match(T.Punctuation, ",")


def is_structural(token: Token) -> bool:
    kw = keyword(token)
    return (
        is_comma(token)
        or kw in STRUCTURAL_KEYWORDS
        or kw.endswith("JOIN")
        or word(token) in _STRUCTURAL_NAMES
    )


def leaves(tokens: Iterable[Token]) -> Iterator[Token]:
    """Leaf tokens at parenthesis depth 0; each Parenthesis is one leaf."""
    for token in tokens:
        if isinstance(token, Parenthesis):
            yield token
        elif token.is_group:
            yield from leaves(token.tokens)
        else:
            yield token


def significant(tokens: Iterable[Token]) -> list[Token]:
    return [token for token in tokens if not token.is_whitespace]


def items(tokens: Iterable[Token]) -> list[Token]:
    """Top-level items of a query block, with structural groups opened."""
    result: list[Token] = []
    for token in tokens:
        if isinstance(token, Parenthesis) or not token.is_group:
            result.append(token)
        elif isinstance(token, (Where, IdentifierList)) or any(
            is_structural(leaf) for leaf in leaves(token.tokens)
        ):
            result.extend(items(token.tokens))
        else:
            result.append(token)
    return result


def inner(paren: Parenthesis) -> list[Token]:
    """Tokens between the opening and closing parenthesis."""
    body = list(paren.tokens[1:])
    if body and body[-1].match(T.Punctuation, ")"):
        body.pop()
    return body


def is_subquery(token: Token) -> bool:
    """True for a Parenthesis whose body is a SELECT or WITH query."""
    if not isinstance(token, Parenthesis):
        return False
    body = significant(leaves(inner(token)))
    if not body:
        return False
    if isinstance(body[0], Parenthesis):
        return is_subquery(body[0])
    return keyword(body[0]) in ("SELECT", "WITH")


def split(tokens: Iterable[Token], is_separator: Callable[[Token], bool]) -> list[list[Token]]:
    """Split a run of items on separator tokens; separators are dropped."""
    parts: list[list[Token]] = [[]]
    for token in tokens:
        if is_separator(token):
            parts.append([])
        else:
            parts[-1].append(token)
    return parts


def render(tokens: Iterable[Token]) -> tuple[str, str]:
    """Text of ``tokens`` and a masked copy of equal length."""
    text: list[str] = []
    masked: list[str] = []
    for token in tokens:
        value = str(token)
        text.append(value)
        if is_subquery(token) or token.ttype in T.String.Single:
            masked.append(value[0] + " " * (len(value) - 2) + value[-1])
        elif token.is_group:
            masked.append(render(token.tokens)[1])
        else:
            masked.append(value)
    return "".join(text), "".join(masked)

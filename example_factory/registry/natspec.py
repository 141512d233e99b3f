"""Solidity source scanning: comments, NatSpec tags and constructor parameters.

A small single-pass lexer splits Solidity source into code, string literals
and comments.  Working from tokens instead of pattern-matching raw text means
an ``@notice`` inside a string literal or an ordinary ``//`` comment is never
mistaken for documentation, and a ``constructor(`` inside a string is never
mistaken for the real constructor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class Token:
    """A lexical chunk of Solidity source."""

    kind: str  # "code" | "string" | "comment"
    text: str
    offset: int

    @property
    def is_doc(self) -> bool:
        """True for NatSpec comments (``///`` and ``/** */``)."""
        if self.kind != "comment":
            return False
        if self.text.startswith("///"):
            return True
        return self.text.startswith("/**") and self.text != "/**/"


@dataclass(frozen=True)
class ConstructorParam:
    """One constructor parameter, e.g. ``string memory name_``."""

    type: str
    name: str


_DATA_LOCATIONS = {"memory", "storage", "calldata"}
_TAG_PATTERN = re.compile(r"@([A-Za-z][\w:-]*)")


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

def tokenize(source: str) -> Iterator[Token]:
    """Split *source* into code, string and comment tokens.

    Unterminated strings and block comments run to end of input rather than
    raising; discovery reports the resulting missing tag instead.
    """
    i = 0
    n = len(source)
    code_start = 0

    def _flush(end: int) -> Iterator[Token]:
        if end > code_start:
            yield Token("code", source[code_start:end], code_start)

    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""

        if ch == "/" and nxt == "/":
            yield from _flush(i)
            end = source.find("\n", i)
            end = n if end == -1 else end
            yield Token("comment", source[i:end], i)
            i = code_start = end
        elif ch == "/" and nxt == "*":
            yield from _flush(i)
            end = source.find("*/", i + 2)
            end = n if end == -1 else end + 2
            yield Token("comment", source[i:end], i)
            i = code_start = end
        elif ch in ("'", '"'):
            yield from _flush(i)
            j = i + 1
            while j < n and source[j] != ch and source[j] != "\n":
                j += 2 if source[j] == "\\" else 1
            end = j + 1 if j < n and source[j] == ch else min(j, n)
            yield Token("string", source[i:end], i)
            i = code_start = end
        else:
            i += 1

    yield from _flush(n)


def doc_comments(source: str) -> list[str]:
    """Return the body text of every NatSpec comment, in source order.

    Consecutive ``///`` lines separated only by whitespace are merged into a
    single comment, as the Solidity compiler does.
    """
    bodies: list[str] = []
    pending_lines: list[str] = []
    last_was_line_doc = False

    for token in tokenize(source):
        if token.kind == "code" and not token.text.strip():
            continue
        if token.is_doc and token.text.startswith("///"):
            pending_lines.append(token.text[3:])
            last_was_line_doc = True
            continue
        if last_was_line_doc:
            bodies.append("\n".join(pending_lines))
            pending_lines = []
            last_was_line_doc = False
        if token.is_doc:
            bodies.append(_block_body(token.text))

    if pending_lines:
        bodies.append("\n".join(pending_lines))
    return bodies


def _block_body(text: str) -> str:
    inner = text[3:]
    if inner.endswith("*/"):
        inner = inner[:-2]
    lines = [re.sub(r"^\s*\*(?!/)\s?", "", line) for line in inner.split("\n")]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# NatSpec tags
# ---------------------------------------------------------------------------

def extract_tag(body: str, tag: str) -> Optional[str]:
    """Return the text of the first ``@tag`` in a doc comment body.

    The text runs until the next tag or the end of the comment; lines are
    joined with single spaces.  Returns ``None`` if the tag is absent or empty.
    """
    matches = list(_TAG_PATTERN.finditer(body))
    for index, match in enumerate(matches):
        if match.group(1) != tag:
            continue
        end = matches[index + 1].start() if index + 1 < len(matches) else len(body)
        text = " ".join(body[match.end():end].split())
        return text or None
    return None


def extract_notice(source: str) -> Optional[str]:
    """Return the first ``@notice`` text found in any NatSpec comment."""
    for body in doc_comments(source):
        notice = extract_tag(body, "notice")
        if notice:
            return notice
    return None


# ---------------------------------------------------------------------------
# Constructor discovery
# ---------------------------------------------------------------------------

def code_only(source: str) -> str:
    """Return *source* with comments removed and string contents blanked.

    Offsets are not preserved; the result is only meant for structural scans.
    """
    parts: list[str] = []
    for token in tokenize(source):
        if token.kind == "code":
            parts.append(token.text)
        elif token.kind == "string":
            parts.append(token.text[0] * 2)
        else:
            parts.append(" ")
    return "".join(parts)


def constructor_params(source: str, contract_name: str = "") -> Optional[list[ConstructorParam]]:
    """Statically discover the constructor parameters of a contract.

    When *contract_name* is given, only that contract's body is searched, so
    constructors of other contracts in the same file are ignored.

    Returns:
        The parameter list (possibly empty), or ``None`` if no constructor
        was found.
    """
    code = code_only(source)
    start, end = 0, len(code)
    if contract_name:
        decl = re.search(rf"\bcontract\s+{re.escape(contract_name)}\b", code)
        if decl:
            start, end = _body_span(code, decl.end())

    match = re.compile(r"\bconstructor\s*\(").search(code, start, end)
    if match is None:
        return None

    depth = 1
    i = match.end()
    while i < len(code) and depth:
        if code[i] == "(":
            depth += 1
        elif code[i] == ")":
            depth -= 1
        i += 1
    param_text = code[match.end(): i - 1]

    params: list[ConstructorParam] = []
    for index, raw in enumerate(_split_top_level(param_text)):
        words = [w for w in raw.split() if w not in _DATA_LOCATIONS]
        if not words:
            continue
        if len(words) == 1:
            params.append(ConstructorParam(type=words[0], name=f"arg{index}"))
        else:
            params.append(ConstructorParam(type=" ".join(words[:-1]), name=words[-1]))
    return params


def _body_span(code: str, after: int) -> tuple[int, int]:
    """Span of the first brace-balanced block opening at or after *after*."""
    open_brace = code.find("{", after)
    if open_brace == -1:
        return after, after
    depth = 0
    for i in range(open_brace, len(code)):
        if code[i] == "{":
            depth += 1
        elif code[i] == "}":
            depth -= 1
            if depth == 0:
                return open_brace, i
    return open_brace, len(code)


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if "".join(current).strip():
        parts.append("".join(current))
    return parts

# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Theme Extension Parser

Single responsibility: Turn an author-supplied Tailwind config fragment into
a plain theme-extension dict, without evaluating it.

The fragment is tokenized (comments dropped, ', " and ` strings decoded) and
parsed as a JavaScript object literal. Members whose value cannot be read
statically (function calls, spreads, identifiers, arrow functions,
interpolated templates, arithmetic) are dropped individually. If the
structure itself cannot be parsed, a fixed set of known keys is pattern
matched instead. extract_theme_extension never raises.
"""

import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from marketplace.core.errors import ThemeParseError

logger = logging.getLogger(__name__)

_PUNCTUATION = set("{}[]():,=.;")
_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F]+|\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?"
)
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_LITERALS = {"true": True, "false": False, "null": None, "undefined": None}
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_OPENERS = {"{": "}", "[": "]", "(": ")"}
_DECLARATIONS = ("const", "let", "var")

# Known keys recovered by pattern matching when structured parsing fails
_KNOWN_BACKGROUND_KEYS = ("grid-pattern", "grid-pattern-light")


class Token(NamedTuple):
    kind: str  # punct, string, template, interpolated, number, ident, other
    value: str
    position: int


class _Unsupported(Exception):
    """Value cannot be read without evaluating code"""


def _hex_char(digits: str, position: int) -> str:
    try:
        return chr(int(digits, 16))
    except (ValueError, OverflowError):
        raise ThemeParseError(f"Invalid escape sequence: {digits!r}", position)


def _read_string(text: str, start: int) -> Tuple[Token, int]:
    quote = text[start]
    kind = "template" if quote == "`" else "string"
    buf: List[str] = []
    i = start + 1
    n = len(text)

    while i < n:
        ch = text[i]
        if ch == "\\":
            if i + 1 >= n:
                break
            nxt = text[i + 1]
            if nxt == "u" and text.startswith("{", i + 2):
                end = text.find("}", i + 3)
                if end == -1:
                    raise ThemeParseError("Invalid unicode escape", i)
                buf.append(_hex_char(text[i + 3:end], i))
                i = end + 1
            elif nxt == "u":
                buf.append(_hex_char(text[i + 2:i + 6], i))
                i += 6
            elif nxt == "x":
                buf.append(_hex_char(text[i + 2:i + 4], i))
                i += 4
            elif nxt == "\n":
                i += 2
            else:
                buf.append(_ESCAPES.get(nxt, nxt))
                i += 2
            continue
        if ch == quote:
            return Token(kind, "".join(buf), start), i + 1
        if kind == "template" and text.startswith("${", i):
            kind = "interpolated"
            depth = 0
            while i < n:
                if text[i] == "{":
                    depth += 1
                elif text[i] == "}":
                    depth -= 1
                    if depth == 0:
                        break
                i += 1
            i += 1
            continue
        if ch == "\n" and quote != "`":
            raise ThemeParseError("Unterminated string", start)
        buf.append(ch)
        i += 1

    raise ThemeParseError("Unterminated string", start)


def tokenize(text: str) -> List[Token]:
    """
    Split a config fragment into tokens.

    Raises:
        ThemeParseError: On unterminated strings or comments
    """
    tokens: List[Token] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end + 1
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ThemeParseError("Unterminated comment", i)
            i = end + 2
            continue
        if ch in "'\"`":
            token, i = _read_string(text, i)
            tokens.append(token)
            continue
        if text.startswith("...", i):
            tokens.append(Token("punct", "...", i))
            i += 3
            continue
        if text.startswith("=>", i):
            tokens.append(Token("other", "=>", i))
            i += 2
            continue

        match = _NUMBER_RE.match(text, i)
        if match:
            tokens.append(Token("number", match.group(0), i))
            i = match.end()
            continue
        if ch in _PUNCTUATION:
            tokens.append(Token("punct", ch, i))
            i += 1
            continue
        match = _IDENT_RE.match(text, i)
        if match:
            tokens.append(Token("ident", match.group(0), i))
            i = match.end()
            continue

        tokens.append(Token("other", ch, i))
        i += 1

    return tokens


def _to_number(literal: str) -> Any:
    if literal.lower().startswith("0x"):
        return int(literal, 16)
    if any(c in literal for c in ".eE"):
        return float(literal)
    return int(literal)


class _ObjectLiteralParser:
    """Recursive-descent parser over a token list"""

    def __init__(self, tokens: List[Token], pos: int = 0):
        self.tokens = tokens
        self.pos = pos

    def peek(self, offset: int = 0) -> Optional[Token]:
        idx = self.pos + offset
        return self.tokens[idx] if idx < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise ThemeParseError("Unexpected end of input")
        self.pos += 1
        return token

    @staticmethod
    def is_punct(token: Optional[Token], value: str) -> bool:
        return token is not None and token.kind == "punct" and token.value == value

    def expect(self, value: str) -> Token:
        token = self.advance()
        if not self.is_punct(token, value):
            raise ThemeParseError(f"Expected {value!r}, got {token.value!r}", token.position)
        return token

    def at_delimiter(self) -> bool:
        token = self.peek()
        return token is not None and token.kind == "punct" and token.value in (",", "}", "]")

    def parse_value(self) -> Any:
        token = self.peek()
        if token is None:
            raise ThemeParseError("Unexpected end of input")
        if self.is_punct(token, "{"):
            return self.parse_object()
        if self.is_punct(token, "["):
            return self.parse_array()
        if token.kind in ("string", "template"):
            self.pos += 1
            return token.value
        if token.kind == "number":
            self.pos += 1
            return _to_number(token.value)
        if token.kind == "other" and token.value in "+-":
            following = self.peek(1)
            if following is not None and following.kind == "number":
                self.pos += 2
                number = _to_number(following.value)
                return -number if token.value == "-" else number
        if token.kind == "ident" and token.value in _LITERALS:
            self.pos += 1
            return _LITERALS[token.value]
        raise _Unsupported()

    def parse_object(self) -> Dict[str, Any]:
        self.expect("{")
        result: Dict[str, Any] = {}

        while True:
            token = self.peek()
            if token is None:
                raise ThemeParseError("Unterminated object")
            if self.is_punct(token, "}"):
                self.pos += 1
                return result

            start = self.pos
            try:
                key, value = self._parse_member()
                result[key] = value
            except _Unsupported:
                self.pos = start
                self._skip_entry()

            token = self.peek()
            if self.is_punct(token, ","):
                self.pos += 1
            elif not self.is_punct(token, "}"):
                position = token.position if token else None
                raise ThemeParseError("Expected ',' or '}'", position)

    def _parse_member(self) -> Tuple[str, Any]:
        token = self.advance()
        if token.kind not in ("ident", "string", "template", "number"):
            raise _Unsupported()
        if not self.is_punct(self.peek(), ":"):
            # shorthand property or method
            raise _Unsupported()
        self.pos += 1
        value = self.parse_value()
        if not self.at_delimiter():
            raise _Unsupported()
        return token.value, value

    def parse_array(self) -> List[Any]:
        self.expect("[")
        result: List[Any] = []

        while True:
            token = self.peek()
            if token is None:
                raise ThemeParseError("Unterminated array")
            if self.is_punct(token, "]"):
                self.pos += 1
                return result

            start = self.pos
            try:
                value = self.parse_value()
                if not self.at_delimiter():
                    raise _Unsupported()
                result.append(value)
            except _Unsupported:
                self.pos = start
                self._skip_entry()

            token = self.peek()
            if self.is_punct(token, ","):
                self.pos += 1
            elif not self.is_punct(token, "]"):
                position = token.position if token else None
                raise ThemeParseError("Expected ',' or ']'", position)

    def _skip_entry(self):
        """Skip tokens up to the next ',', '}' or ']' at the current nesting level"""
        closers: List[str] = []
        while True:
            token = self.peek()
            if token is None:
                raise ThemeParseError("Unexpected end of input while skipping value")
            if token.kind == "punct":
                if not closers and token.value in (",", "}", "]"):
                    return
                if token.value in _OPENERS:
                    closers.append(_OPENERS[token.value])
                elif closers and token.value == closers[-1]:
                    closers.pop()
                elif token.value in (")", "}", "]"):
                    raise ThemeParseError(f"Unbalanced {token.value!r}", token.position)
            self.pos += 1


def _locate_config_object(tokens: List[Token]) -> Tuple[Optional[int], bool]:
    """
    Find the token index of the exported configuration object.

    Returns (index, is_fragment); is_fragment is True when the text is a
    bare object literal rather than a config module.
    """
    def punct(i: int, value: str) -> bool:
        return i < len(tokens) and tokens[i].kind == "punct" and tokens[i].value == value

    def ident(i: int, value: Optional[str] = None) -> bool:
        return (
            i < len(tokens)
            and tokens[i].kind == "ident"
            and (value is None or tokens[i].value == value)
        )

    for i in range(len(tokens)):
        if ident(i, "module") and punct(i + 1, ".") and ident(i + 2, "exports") \
                and punct(i + 3, "=") and punct(i + 4, "{"):
            return i + 4, False
        if ident(i, "export") and ident(i + 1, "default") and punct(i + 2, "{"):
            return i + 2, False

    for i in range(len(tokens)):
        if tokens[i].kind == "ident" and tokens[i].value in _DECLARATIONS and ident(i + 1):
            j = i + 2
            if punct(j, ":"):
                # type annotation, e.g. `const config: Config = {`
                while j < len(tokens) and not punct(j, "="):
                    j += 1
            if punct(j, "=") and punct(j + 1, "{"):
                return j + 1, False

    if tokens and punct(0, "{"):
        return 0, True

    return None, False


def parse_config_object(text: str) -> Tuple[Dict[str, Any], bool]:
    """
    Parse the configuration object literal out of a config fragment.

    Returns:
        (object, is_fragment)

    Raises:
        ThemeParseError: If no object is found or its structure is broken
    """
    tokens = tokenize(text)
    start, is_fragment = _locate_config_object(tokens)
    if start is None:
        raise ThemeParseError("No configuration object found")
    parser = _ObjectLiteralParser(tokens, start)
    return parser.parse_object(), is_fragment


def _extract_known_keys(text: str) -> Dict[str, Any]:
    found = {}
    for key in _KNOWN_BACKGROUND_KEYS:
        match = re.search(
            r"""['"]%s['"]\s*:\s*(?:`([^`]*)`|"([^"]*)"|'([^']*)')""" % re.escape(key),
            text,
        )
        if match:
            found[key] = next(group for group in match.groups() if group is not None)

    if not found:
        return {}
    return {"theme": {"extend": {"backgroundImage": found}}}


def extract_theme_extension(text: Optional[str]) -> Dict[str, Any]:
    """
    Extract the theme extension of a Tailwind config fragment.

    Returns {"theme": {"extend": {...}}} (or {"theme": {...}} when the
    config has no extend section), or {} when nothing usable is found.
    Never raises.

    Example:
        >>> extract_theme_extension("module.exports = {theme: {extend: {colors: {brand: '#f00'}}}}")
        {'theme': {'extend': {'colors': {'brand': '#f00'}}}}
    """
    if not text or not text.strip():
        return {}

    try:
        try:
            config, is_fragment = parse_config_object(text)
        except ThemeParseError as e:
            logger.warning(f"Theme extension not parseable, matching known keys: {e}")
            return _extract_known_keys(text)

        theme = config.get("theme")
        if isinstance(theme, dict):
            extend = theme.get("extend")
            if isinstance(extend, dict):
                return {"theme": {"extend": extend}} if extend else {}
            return {"theme": theme} if theme else {}

        if is_fragment and config:
            return {"theme": {"extend": config}}
        return {}
    except Exception as e:
        logger.error(f"Theme extension parsing failed: {e}")
        return {}

"""
Frontmatter codec for noteferry documents.

Implements the small YAML subset used in document headers:

    key: scalar
    key: []
    key:
      - item
      - item

Scalars are emitted bare unless a bare token would be misread, in which case
they are double-quoted with backslash escapes. Decoding coerces bare scalars
(true/false, null/undefined, integers, floats); quoted scalars and list items
are always strings. For every mapping of strings and string lists,
decode(encode(m)) == m.

This is intentionally not a YAML parser: nested mappings, multi-line scalars,
anchors and the like are not supported.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping

from ..timestamps import format_timestamp

_INT_RE = re.compile(r'^-?\d+$')
# Plain decimals, exponent form and the non-finite values repr() produces
_FLOAT_RE = re.compile(r"^(-?(\d+\.\d+|\d+(\.\d+)?[eE][+-]?\d+|inf)|nan)$")
_ESCAPE_RE = re.compile(r'\\(.)', re.DOTALL)

_BOOLEAN_TOKENS = {"true": True, "false": False}
_NULL_TOKENS = {"null", "undefined"}
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


class FrontmatterCodec:
    """
    Encodes and decodes flat key/value frontmatter blocks.
    """

    def encode(self, fields: Mapping[str, Any]) -> str:
        """
        Encode a mapping as a frontmatter block.

        Args:
            fields: Ordered mapping of key to scalar or list of strings.
                Keys whose value is None are omitted.

        Returns:
            The block, one line per key (plus one per list item), always
            ending with a newline

        Raises:
            ValueError: If a key cannot be represented
        """
        lines: List[str] = []

        for key, value in fields.items():
            self._check_key(key)
            if value is None:
                continue

            if isinstance(value, (list, tuple)):
                if not value:
                    lines.append(f"{key}: []")
                else:
                    lines.append(f"{key}:")
                    for item in value:
                        lines.append(f"  - {self.format_scalar(item)}")
            else:
                lines.append(f"{key}: {self.format_scalar(value)}")

        return "\n".join(lines) + "\n"

    def decode(self, text: str) -> Dict[str, Any]:
        """
        Decode a frontmatter block.

        Lines that are blank, comments or not of the form 'key: value' are
        skipped. A key whose value is a null token is left out of the result.

        Args:
            text: The block between the '---' delimiters

        Returns:
            Mapping of key to decoded value, in document order
        """
        result: Dict[str, Any] = {}
        current_list_key = None

        for raw_line in text.split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith("- "):
                if current_list_key is not None:
                    result[current_list_key].append(self._parse_item(line[2:].strip()))
                else:
                    logging.debug(f"Ignoring list item outside of a list: {line!r}")
                continue

            current_list_key = None

            if line.startswith("#"):
                continue

            key, separator, value = line.partition(":")
            key = key.strip()
            value = value.strip()
            if not separator or not key:
                logging.debug(f"Ignoring malformed frontmatter line: {line!r}")
                continue

            if value == "":
                result[key] = []
                current_list_key = key
            elif value == "[]":
                result[key] = []
            elif value.startswith("[") and value.endswith("]"):
                result[key] = self._parse_flow_list(value[1:-1])
            else:
                parsed = self.parse_scalar(value)
                if parsed is None:
                    result.pop(key, None)
                else:
                    result[key] = parsed

        return result

    def format_scalar(self, value: Any) -> str:
        """Render a single scalar, quoting it when a bare token would be misread."""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return repr(value)
        if isinstance(value, datetime):
            return format_timestamp(value)

        text = value if isinstance(value, str) else str(value)
        if self.needs_quoting(text):
            return self.quote(text)
        return text

    def parse_scalar(self, value: str) -> Any:
        """
        Decode a scalar token.

        Quoted tokens are unescaped and returned as strings. Bare tokens are
        coerced to bool, None, int or float where they match exactly.
        """
        if self._is_quoted(value):
            return self._unquote(value)
        if value in _BOOLEAN_TOKENS:
            return _BOOLEAN_TOKENS[value]
        if value in _NULL_TOKENS:
            return None
        if _INT_RE.match(value):
            return int(value)
        if _FLOAT_RE.match(value):
            return float(value)
        return value

    @staticmethod
    def needs_quoting(text: str) -> bool:
        """Whether a string must be quoted to survive a decode unchanged."""
        if text == "" or text != text.strip():
            return True
        if any(ch in text for ch in ('"', "'", "\n", "\r")):
            return True
        if ": " in text or text.endswith(":") or text.startswith("#"):
            return True
        if text.startswith(("[", "{", "-")):
            return True
        if text in _BOOLEAN_TOKENS or text in _NULL_TOKENS:
            return True
        return bool(_INT_RE.match(text) or _FLOAT_RE.match(text))

    @staticmethod
    def quote(text: str) -> str:
        """Double-quote a string, escaping backslashes, quotes and line breaks."""
        escaped = (
            text.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )
        return f'"{escaped}"'

    def _parse_item(self, value: str) -> str:
        if self._is_quoted(value):
            return self._unquote(value)
        return value

    def _parse_flow_list(self, inner: str) -> List[str]:
        """Split an inline '[a, "b, c"]' list on commas outside quotes."""
        items: List[str] = []
        buffer: List[str] = []
        quote_char = None
        escaped = False

        for ch in inner:
            if quote_char is not None:
                buffer.append(ch)
                if escaped:
                    escaped = False
                elif ch == "\\" and quote_char == '"':
                    escaped = True
                elif ch == quote_char:
                    quote_char = None
            elif ch in ('"', "'"):
                quote_char = ch
                buffer.append(ch)
            elif ch == ",":
                items.append("".join(buffer).strip())
                buffer = []
            else:
                buffer.append(ch)

        items.append("".join(buffer).strip())
        return [self._parse_item(item) for item in items if item]

    @staticmethod
    def _is_quoted(value: str) -> bool:
        return len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'")

    @staticmethod
    def _unquote(value: str) -> str:
        inner = value[1:-1]
        if value[0] == "'":
            return inner.replace("''", "'")
        return _ESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), inner)

    @staticmethod
    def _check_key(key: str) -> None:
        if not isinstance(key, str) or not key.strip() or ":" in key or "\n" in key or key != key.strip():
            raise ValueError(f"Invalid frontmatter key: {key!r}")

#!/usr/bin/env python3
"""
percent_codec.py — percent-encoding (URL-encoding) for URL Tool.

encode(text)  Escape everything outside the unreserved set
              (letters, digits, - _ . ! ~ * ' ( )) as %XX of its UTF-8 bytes.
decode(text)  Strict inverse: every % must start a two-digit hex escape and
              the escaped bytes must form valid UTF-8.
"""

import re
from urllib.parse import quote

# quote() always keeps ASCII letters, digits and "_.-~"
SAFE_CHARS = "!*'()"

_ESCAPE_RUN = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class CodecError(ValueError):
    """Base class for percent-codec failures."""


class EncodingError(CodecError):
    """Raised when the text cannot be represented as UTF-8."""


class DecodingError(CodecError):
    """Raised for a malformed %-escape or an invalid UTF-8 byte sequence."""


def encode(text: str) -> str:
    try:
        return quote(text, safe=SAFE_CHARS)
    except UnicodeEncodeError as exc:
        raise EncodingError(
            f"Cannot encode character at position {exc.start}: unpaired surrogate"
        ) from exc


def decode(text: str) -> str:
    """
    Decode %XX escapes back to text.

    Consecutive escapes are decoded together so multi-byte UTF-8 sequences
    (e.g. %C3%A9) come back as one character. Unlike urllib's unquote(),
    nothing is passed through silently: a stray % or a byte run that is not
    UTF-8 raises DecodingError.
    """
    bad = _BAD_ESCAPE.search(text)
    if bad:
        snippet = text[bad.start():bad.start() + 3]
        raise DecodingError(
            f"Malformed escape {snippet!r} at position {bad.start()}"
        )

    def _decode_run(match: re.Match) -> str:
        raw = bytes.fromhex(match.group(0).replace("%", ""))
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodingError(
                f"Escapes at position {match.start()} are not valid UTF-8: {exc.reason}"
            ) from exc

    return _ESCAPE_RUN.sub(_decode_run, text)

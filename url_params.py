#!/usr/bin/env python3
"""
url_params.py — URL parameter model for URL Tool.

Splits a URL into a base URL (scheme + authority + path) and an ordered list
of query parameters, lets the caller edit that list, and builds the URL back.

Public API
----------
parse(raw)                -> ParsedUrl       raises InvalidUrlError
mutate(parsed, op)        -> Parameter|None  op: AddParam / UpdateParam / DeleteParam
reconstruct(parsed)       -> str             raises InvalidUrlError
decoded_view(parsed)      -> str             display only

Reconstruction notes
--------------------
  * Parameters whose key is blank (after strip) are left out, so a row that
    is still being typed never corrupts the URL.
  * Keys are set, not appended: when the same key appears more than once the
    last value wins and the key keeps the position of its first occurrence.
    Repeated keys in the source URL therefore collapse to one on the way out.
"""

import itertools
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

from percent_codec import DecodingError, decode

# Schemes that are meaningless without a host
HOST_SCHEMES  = {"http", "https", "ftp", "ws", "wss"}
DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21, "ws": 80, "wss": 443}

# Path characters left as-is; everything else (spaces, non-ASCII…) is escaped
_PATH_SAFE = "/%:@!$&'()*+,;=~"

_SCHEME_RE   = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_STRIP_CHARS = str.maketrans("", "", "\t\n\r")


class InvalidUrlError(ValueError):
    """Raised when a string does not parse as an absolute URL."""


# ─── Model ────────────────────────────────────────────────────────────────────

@dataclass
class Parameter:
    id: str
    key: str = ""
    value: str = ""


@dataclass
class ParsedUrl:
    base_url: str
    params: List[Parameter] = field(default_factory=list)
    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), repr=False, compare=False
    )

    def new_param(self, key: str = "", value: str = "") -> Parameter:
        """Create a Parameter with a fresh id (not added to params)."""
        # params may have been supplied by the caller with ids of their own
        taken = {p.id for p in self.params}
        param_id = f"p{next(self._ids)}"
        while param_id in taken:
            param_id = f"p{next(self._ids)}"
        return Parameter(id=param_id, key=key, value=value)

    def find_param(self, param_id: str) -> Optional[Parameter]:
        return next((p for p in self.params if p.id == param_id), None)

    def add_param(self) -> Parameter:
        param = self.new_param()
        self.params.append(param)
        return param

    def update_param(self, param_id: str, key: Optional[str] = None,
                     value: Optional[str] = None):
        # Unknown ids are ignored: the UI may still hold a deleted row's id
        param = self.find_param(param_id)
        if param is None:
            return
        if key is not None:
            param.key = key
        if value is not None:
            param.value = value

    def delete_param(self, param_id: str):
        self.params[:] = [p for p in self.params if p.id != param_id]


# ─── Mutations ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddParam:
    pass


@dataclass(frozen=True)
class UpdateParam:
    param_id: str
    key: Optional[str] = None
    value: Optional[str] = None


@dataclass(frozen=True)
class DeleteParam:
    param_id: str


def mutate(parsed: ParsedUrl, op) -> Optional[Parameter]:
    """
    Apply one edit to *parsed* in place.
    Returns the new Parameter for AddParam, None otherwise. Never fails for a
    valid op; ids that no longer exist are a no-op.
    """
    if isinstance(op, AddParam):
        return parsed.add_param()
    if isinstance(op, UpdateParam):
        parsed.update_param(op.param_id, op.key, op.value)
        return None
    if isinstance(op, DeleteParam):
        parsed.delete_param(op.param_id)
        return None
    raise TypeError(f"Unknown mutation: {op!r}")


# ─── Splitting / joining ──────────────────────────────────────────────────────

def _split(raw: str):
    """
    Validate *raw* as an absolute URL.
    Returns (base_url, query) with base_url normalised: lowercase scheme and
    host, default port dropped, path escaped, no query or fragment.
    """
    text = raw.strip().translate(_STRIP_CHARS)
    try:
        parts = urlsplit(text)
        port = parts.port
        path = quote(parts.path, safe=_PATH_SAFE)
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL {raw!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    if not scheme or not _SCHEME_RE.match(scheme):
        raise InvalidUrlError(f"Invalid URL {raw!r}: missing scheme")

    has_authority = text[len(scheme) + 1:].startswith("//")
    if any(ch.isspace() for ch in parts.netloc):
        raise InvalidUrlError(f"Invalid URL {raw!r}: malformed authority")
    if scheme in HOST_SCHEMES and not parts.hostname:
        raise InvalidUrlError(f"Invalid URL {raw!r}: missing host")
    if not has_authority and not parts.path:
        raise InvalidUrlError(f"Invalid URL {raw!r}: nothing after scheme")

    # No authority (mailto:, urn:...): "scheme:path". Writing "scheme://path"
    # would turn the path into a host when the base URL is parsed again.
    if not has_authority:
        return f"{scheme}:{path}", parts.query

    userinfo, at, hostport = parts.netloc.rpartition("@")
    hostport = hostport.lower()
    if port is not None and DEFAULT_PORTS.get(scheme) == port:
        hostport = hostport[:hostport.rindex(":")]
    elif port is None and hostport.endswith(":"):
        hostport = hostport[:-1]
    if scheme in HOST_SCHEMES and not path:
        path = "/"
    return f"{scheme}://{userinfo}{at}{hostport}{path}", parts.query


# ─── Public API ───────────────────────────────────────────────────────────────

def parse(raw: str) -> ParsedUrl:
    """
    Parse a URL typed by a human or copied already percent-encoded.

    Input containing "%" is decoded first; if that fails the original string
    is used as-is. Query pairs are decoded with form rules ("+" is a space),
    kept in order, duplicates and blank values included.
    """
    text = raw
    if "%" in raw:
        try:
            text = decode(raw)
        except DecodingError:
            text = raw

    base_url, query = _split(text)
    parsed = ParsedUrl(base_url=base_url)
    for key, value in parse_qsl(query, keep_blank_values=True):
        parsed.params.append(parsed.new_param(key, value))
    return parsed


def reconstruct(parsed: ParsedUrl) -> str:
    base_url, _query = _split(parsed.base_url)

    query = {}
    for param in parsed.params:
        key = param.key.strip()
        if key:
            query[key] = param.value

    if not query:
        return base_url
    return f"{base_url}?{urlencode(list(query.items()))}"


def decoded_view(parsed: ParsedUrl) -> str:
    """Reconstructed URL with escapes decoded, for display only."""
    url = reconstruct(parsed)
    try:
        return decode(url)
    except DecodingError:
        return url

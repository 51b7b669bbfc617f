#!/usr/bin/env python3
"""
workbench.py — per-session state for URL Tool.

Holds everything the window edits (encoder input/output, active tab, the
parsed URL and which parameter row is being edited) and runs the codec and
URL-model operations against it. Any operation that raises leaves the state
exactly as it was.

Every action reports one line through log_fn(message, tag, operation), where
tag is one of "ok", "info", "warn", "err" and operation names the action.
"""

from typing import Callable, Optional

import pyperclip

import percent_codec
import url_params
from url_params import ParsedUrl

ENCODE = "encode"
DECODE = "decode"
PREVIEW_CHARS = 80


class EmptyInputError(ValueError):
    """Raised when an action needs text and the field is blank."""


def _preview(text: str) -> str:
    short = text[:PREVIEW_CHARS].replace("\n", "↵")
    return f"{short!r}{'…' if len(text) > PREVIEW_CHARS else ''}"


class Workbench:
    def __init__(self, log_fn: Optional[Callable[[str, str, str], None]] = None,
                 mode: str = ENCODE):
        self._log_fn         = log_fn
        self.input_text      = ""
        self.output_text     = ""
        self.mode            = mode if mode in (ENCODE, DECODE) else ENCODE
        self.url_text        = ""
        self.parsed_url: Optional[ParsedUrl] = None
        self.editing_param_id: Optional[str] = None

    def _log(self, message: str, tag: str = "info", operation: str = ""):
        if self._log_fn:
            self._log_fn(message, tag, operation)

    # ── Encode / decode tab ───────────────────────────────────────────────────

    def set_mode(self, mode: str):
        if mode not in (ENCODE, DECODE):
            raise ValueError(f"Unknown mode: {mode!r}")
        self.mode = mode

    def process(self) -> str:
        """Encode or decode input_text per the active mode into output_text."""
        if not self.input_text.strip():
            self._log("Nothing to process — input is empty", "warn", "process")
            raise EmptyInputError("Please enter some text to process.")

        fn = percent_codec.encode if self.mode == ENCODE else percent_codec.decode
        try:
            result = fn(self.input_text)
        except percent_codec.CodecError as exc:
            self._log(f"✗ {self.mode} failed: {exc}", "err", "process")
            raise

        self.output_text = result
        self._log(
            f"▶ {self.mode} {_preview(self.input_text)} → {_preview(result)}",
            "ok", "process"
        )
        return result

    def swap(self):
        self.input_text, self.output_text = self.output_text, self.input_text
        self.mode = DECODE if self.mode == ENCODE else ENCODE
        self._log(f"Swapped input/output, now in {self.mode} mode", "info", "swap")

    def clear(self):
        self.input_text  = ""
        self.output_text = ""
        self._log("Cleared input and output", "info", "clear")

    def load_example(self, text: str):
        self.input_text  = text
        self.output_text = ""
        self._log(f"Loaded example {_preview(text)}", "info", "load_example")

    # ── URL parameter editor ──────────────────────────────────────────────────

    def parse_url(self, text: str = None) -> ParsedUrl:
        """
        Parse text (or the current url_text) and replace the parsed URL.
        On failure the previously parsed URL is kept.
        """
        if text is not None:
            self.url_text = text
        if not self.url_text.strip():
            self._log("Nothing to parse — URL is empty", "warn", "parse")
            raise EmptyInputError("Please enter a URL to parse.")

        try:
            parsed = url_params.parse(self.url_text)
        except url_params.InvalidUrlError as exc:
            self._log(f"✗ {exc}", "err", "parse")
            raise

        self.parsed_url       = parsed
        self.editing_param_id = None
        self._log(
            f"Parsed {parsed.base_url} with {len(parsed.params)} parameter(s)", "ok", "parse"
        )
        return parsed

    def add_param(self):
        if self.parsed_url is None:
            return None
        param = url_params.mutate(self.parsed_url, url_params.AddParam())
        self.editing_param_id = param.id
        self._log(f"Added parameter row {param.id}", "info", "add_param")
        return param

    def update_param(self, param_id: str, key: str = None, value: str = None):
        if self.parsed_url is None:
            return
        url_params.mutate(self.parsed_url, url_params.UpdateParam(param_id, key, value))

    def delete_param(self, param_id: str):
        if self.parsed_url is None:
            return
        url_params.mutate(self.parsed_url, url_params.DeleteParam(param_id))
        if self.editing_param_id == param_id:
            self.editing_param_id = None
        self._log(f"Deleted parameter row {param_id}", "info", "delete_param")

    def start_editing(self, param_id: Optional[str]):
        self.editing_param_id = param_id

    def reconstructed_url(self) -> str:
        if self.parsed_url is None:
            return ""
        return url_params.reconstruct(self.parsed_url)

    def decoded_url(self) -> str:
        if self.parsed_url is None:
            return ""
        return url_params.decoded_view(self.parsed_url)

    def duplicate_keys(self) -> list:
        """Keys typed more than once; only the last value of each survives."""
        if self.parsed_url is None:
            return []
        seen, dupes = set(), []
        for param in self.parsed_url.params:
            key = param.key.strip()
            if key and key in seen and key not in dupes:
                dupes.append(key)
            seen.add(key)
        return dupes

    def load_url_to_encoder(self):
        url = self.reconstructed_url()
        if not url:
            return
        self.input_text  = url
        self.output_text = ""
        self.mode        = ENCODE
        self._log("Reconstructed URL loaded into encoder", "info", "load_url_to_encoder")

    # ── Clipboard ─────────────────────────────────────────────────────────────

    def _copy(self, text: str, what: str) -> bool:
        if not text:
            return False
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            self._log(f"✗ Copy failed: {exc}", "err", "copy")
            return False
        self._log(f"✓ {what} copied to clipboard ({len(text)} chars)", "ok", "copy")
        return True

    def copy_output(self) -> bool:
        return self._copy(self.output_text, "Result")

    def copy_reconstructed_url(self) -> bool:
        try:
            url = self.reconstructed_url()
        except url_params.InvalidUrlError as exc:
            self._log(f"✗ {exc}", "err", "copy")
            return False
        return self._copy(url, "Reconstructed URL")

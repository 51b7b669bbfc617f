#!/usr/bin/env python3
"""
settings.py — urltool.ini loader.

urltool.ini format:
    [ui]
    geometry = 760x680
    tab = encode                 # tab selected on launch: encode | decode

    [examples:encode]            # one example per key, shown in key order
    1 = https://example.com/search?q=hello world

    [examples:decode]
    1 = https%3A//example.com/search%3Fq%3Dhello%20world

A missing file, section or key falls back to the built-in defaults below.
"""

import configparser
from pathlib import Path

INI_NAME = "urltool.ini"

DEFAULT_GEOMETRY = "760x680"
DEFAULT_TAB      = "encode"

DEFAULT_EXAMPLES = {
    "encode": [
        "https://example.com/search?q=hello world",
        "https://site.com/path with spaces/file.html",
        "mailto:user@domain.com?subject=Hello & Welcome",
    ],
    "decode": [
        "https%3A//example.com/search%3Fq%3Dhello%20world",
        "https%3A//site.com/path%20with%20spaces/file.html",
        "mailto%3Auser%40domain.com%3Fsubject%3DHello%20%26%20Welcome",
    ],
}


def default_ini_path() -> str:
    return str(Path(__file__).parent / INI_NAME)


def load_ini(path: str) -> configparser.ConfigParser:
    """Load urltool.ini if it exists; an absent file yields an empty config."""
    # Interpolation off: example URLs are full of "%"
    cfg = configparser.ConfigParser(interpolation=None)
    ini_path = Path(path)
    if ini_path.exists():
        cfg.read(ini_path, encoding="utf-8")
    return cfg


def get_examples(cfg: configparser.ConfigParser, tab: str) -> list:
    section = f"examples:{tab}"
    if cfg.has_section(section):
        examples = [v.strip() for v in cfg[section].values() if v.strip()]
        if examples:
            return examples
    return list(DEFAULT_EXAMPLES.get(tab, []))


def get_ui_options(cfg: configparser.ConfigParser) -> dict:
    tab = cfg.get("ui", "tab", fallback=DEFAULT_TAB).strip().lower()
    if tab not in DEFAULT_EXAMPLES:
        tab = DEFAULT_TAB
    return {
        "geometry": cfg.get("ui", "geometry", fallback=DEFAULT_GEOMETRY).strip(),
        "tab":      tab,
    }

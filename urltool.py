#!/usr/bin/env python3
"""
urltool.py - URL encoder/decoder and query-parameter editor.

Two panels in one window:
  - Encode / Decode: percent-encode or decode text, swap input and output,
    load an example, copy the result to the clipboard.
  - URL parameters: paste a URL (plain or already percent-encoded), edit its
    query parameters in a table, and copy the rebuilt URL or send it back to
    the encoder.

Usage:
    python urltool.py [--config urltool.ini] [--db urltool.db | --no-db]
                      [--text "some text"] [--url "https://..."]

Every action is written to the log pane and (unless --no-db) to urltool.db.

Note: parameters are *set* when the URL is rebuilt, so a key that appears
twice keeps only its last value. The editor warns when that happens.
"""

import argparse
import sys
import traceback
from datetime import datetime
from pathlib import Path

try:
    import tkinter as tk
    from tkinter import scrolledtext, ttk
except ImportError:
    print("tkinter not available - install python3-tk")
    sys.exit(1)

import percent_codec
import url_params
from db_logger import DBLogger
from settings import default_ini_path, get_examples, get_ui_options, load_ini
from workbench import DECODE, ENCODE, EmptyInputError, Workbench

# ── Colours ───────────────────────────────────────────────────────────────────
C = {
    "bg_dark":   "#1e2127",
    "bg_mid":    "#282a36",
    "bg_input":  "#44475a",
    "bg_log":    "#21222c",
    "bg_edit":   "#3b3f51",   # row currently being edited
    "fg":        "#f8f8f2",
    "fg_dim":    "#6272a4",
    "fg_accent": "#8be9fd",
    "fg_purple": "#bd93f9",
    "ok":        "#50fa7b",
    "err":       "#ff5555",
    "warn":      "#ffb86c",
}

# Error titles shown in the status bar, by exception type
ERROR_TITLES = [
    (percent_codec.EncodingError, "Encoding Error"),
    (percent_codec.DecodingError, "Decoding Error"),
    (url_params.InvalidUrlError,  "Invalid URL"),
]


def _button(parent, text, command, fg=None, **kw):
    return tk.Button(
        parent, text=text, command=command,
        bg=C["bg_input"], fg=fg or C["fg"], relief=tk.FLAT,
        activebackground="#6272a4", cursor="hand2", padx=6, **kw
    )


def _entry(parent, var, **kw):
    return tk.Entry(
        parent, textvariable=var,
        bg=C["bg_input"], fg=C["fg"], insertbackground=C["fg"],
        relief=tk.FLAT, font=("Courier", 10), **kw
    )


# ─── Parameter row widget ─────────────────────────────────────────────────────

class ParamRow:
    """One row in the parameter table: [key] = [value] [✕]"""

    def __init__(self, parent, app, param: url_params.Parameter):
        self.app      = app
        self.param_id = param.id
        self._key     = tk.StringVar(value=param.key)
        self._value   = tk.StringVar(value=param.value)

        self.frame = tk.Frame(parent, bg=C["bg_mid"])
        self.frame.pack(fill=tk.X, pady=1)

        self.key_entry = _entry(self.frame, self._key, width=22)
        self.key_entry.pack(side=tk.LEFT, padx=(8, 2))

        tk.Label(
            self.frame, text="=", fg=C["fg_dim"], bg=C["bg_mid"], font=("Courier", 10)
        ).pack(side=tk.LEFT)

        self.value_entry = _entry(self.frame, self._value)
        self.value_entry.pack(side=tk.LEFT, fill=tk.X, expand=True, padx=2)

        _button(self.frame, "✕", self._on_delete, fg=C["err"],
                font=("Courier", 10, "bold")).pack(side=tk.LEFT, padx=(2, 8))

        for entry in (self.key_entry, self.value_entry):
            entry.bind("<FocusIn>", self._on_focus)
        self._key.trace_add("write", self._on_change)
        self._value.trace_add("write", self._on_change)

    def set_editing(self, editing: bool):
        bg = C["bg_edit"] if editing else C["bg_mid"]
        self.frame.config(bg=bg)

    def focus_key(self):
        self.key_entry.focus_set()

    def _on_focus(self, _event=None):
        self.app._start_editing(self.param_id)

    def _on_change(self, *_args):
        self.app._on_param_edit(self.param_id, self._key.get(), self._value.get())

    def _on_delete(self):
        self.app._delete_param(self.param_id)

    def destroy(self):
        self.frame.destroy()


# ─── Session log window ───────────────────────────────────────────────────────

class SessionLogWindow:
    """Non-modal window listing this session's lines from the SQLite log."""

    TAGS = ["all", "ok", "info", "warn", "err"]

    def __init__(self, parent, db_logger):
        self.db = db_logger

        self.win = tk.Toplevel(parent)
        self.win.title(f"URL Tool — Session {db_logger.session_id}")
        self.win.geometry("720x420")
        self.win.configure(bg=C["bg_dark"])

        bar = tk.Frame(self.win, bg=C["bg_dark"], padx=8, pady=6)
        bar.pack(fill=tk.X)

        self.summary = tk.Label(
            bar, text="", fg=C["fg_dim"], bg=C["bg_dark"], font=("Courier", 9)
        )
        self.summary.pack(side=tk.LEFT)

        _button(bar, "⟳ Refresh", self.refresh).pack(side=tk.RIGHT, padx=3)
        self.tag_var = tk.StringVar(value="all")
        tag_combo = ttk.Combobox(
            bar, textvariable=self.tag_var, values=self.TAGS, state="readonly",
            style="Dark.TCombobox", font=("Courier", 9), width=6
        )
        tag_combo.pack(side=tk.RIGHT, padx=3)
        tag_combo.bind("<<ComboboxSelected>>", lambda _e: self.refresh())

        self.text = scrolledtext.ScrolledText(
            self.win, bg=C["bg_log"], fg=C["fg"], font=("Courier", 9),
            wrap=tk.WORD, relief=tk.FLAT, state=tk.DISABLED,
        )
        self.text.pack(fill=tk.BOTH, expand=True, padx=4, pady=(0, 4))
        for tag in ("ok", "info", "warn", "err"):
            self.text.tag_config(tag, foreground=C["fg_accent"] if tag == "info" else C[tag])
        self.text.tag_config("ts", foreground=C["fg_dim"])

        self.refresh()

    def refresh(self):
        self.db.flush()
        tag = self.tag_var.get()
        entries = self.db.session_entries(tag=None if tag == "all" else tag)
        counts = self.db.tag_counts()
        started = self.db.session_row()["started_at"]
        self.summary.config(
            text=f"Started {started}  |  "
                 + "  ".join(f"{t}: {counts.get(t, 0)}" for t in self.TAGS[1:])
        )

        self.text.config(state=tk.NORMAL)
        self.text.delete("1.0", tk.END)
        for entry in entries:
            ts = entry["logged_at"].split("T")[-1]
            op = f"{entry['operation']:<20} " if entry["operation"] else " " * 21
            self.text.insert(tk.END, f"[{ts}] {op}", "ts")
            self.text.insert(tk.END, f"{entry['message']}\n", entry["tag"])
        self.text.config(state=tk.DISABLED)
        self.text.see(tk.END)


# ─── Main application ─────────────────────────────────────────────────────────

class UrlToolApp:
    MAX_LOG_LINES = 300

    def __init__(self, root: tk.Tk, cfg, db_logger=None,
                 initial_text: str = None, initial_url: str = None):
        self.root   = root
        self.cfg    = cfg
        self.db     = db_logger
        self.ui     = get_ui_options(cfg)
        self.wb     = Workbench(log_fn=self._log, mode=self.ui["tab"])

        self.op_count    = 0
        self.error_count = 0
        self._rows: list = []   # list of ParamRow

        self._build_ui()
        self._refresh_examples()
        self._log("URL Tool started", "info")
        if self.db:
            self._log(f"Logging to {self.db.db_path} (session {self.db.session_id})", "info")

        if initial_text:
            self.wb.input_text = initial_text
            self._push_codec()
        if initial_url:
            self.url_var.set(initial_url)
            self._parse_url()

    # ── UI ────────────────────────────────────────────────────────────────────

    def _build_ui(self):
        self.root.title("URL Encoder & Decoder")
        self.root.geometry(self.ui["geometry"])
        self.root.minsize(560, 520)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)
        self.root.configure(bg=C["bg_dark"])

        self._apply_styles()

        # ── Header ────────────────────────────────────────────────────────────
        header = tk.Frame(self.root, bg=C["bg_dark"], padx=8, pady=6)
        header.pack(fill=tk.X)

        tk.Label(
            header, text="URL Encoder & Decoder", fg=C["fg"], bg=C["bg_dark"],
            font=("Helvetica", 12, "bold")
        ).pack(side=tk.LEFT)

        _button(header, "📜 Session log", self._show_session_log).pack(
            side=tk.RIGHT, padx=(8, 3))

        self.mode_var = tk.StringVar(value=self.wb.mode)
        for mode in (DECODE, ENCODE):
            tk.Radiobutton(
                header, text=mode.title(), value=mode, variable=self.mode_var,
                command=self._on_mode_change, indicatoron=False,
                bg=C["bg_input"], fg=C["fg"], selectcolor="#6272a4",
                activebackground="#6272a4", relief=tk.FLAT, padx=10
            ).pack(side=tk.RIGHT, padx=2)

        # ── Encode / decode panel ─────────────────────────────────────────────
        codec = tk.Frame(self.root, bg=C["bg_mid"], padx=8, pady=4)
        codec.pack(fill=tk.X)

        tk.Label(codec, text="Input", fg=C["fg_dim"], bg=C["bg_mid"],
                 font=("Courier", 9)).pack(anchor=tk.W)
        self.input_box = scrolledtext.ScrolledText(
            codec, bg=C["bg_input"], fg=C["fg"], insertbackground=C["fg"],
            font=("Courier", 10), height=4, wrap=tk.WORD, relief=tk.FLAT,
        )
        self.input_box.pack(fill=tk.X)

        buttons = tk.Frame(codec, bg=C["bg_mid"], pady=4)
        buttons.pack(fill=tk.X)
        self.process_btn = _button(buttons, "", self._process, fg=C["ok"])
        self.process_btn.pack(side=tk.LEFT, padx=(0, 3))
        _button(buttons, "⇅ Swap", self._swap).pack(side=tk.LEFT, padx=3)
        _button(buttons, "⟲ Clear", self._clear).pack(side=tk.LEFT, padx=3)

        self.example_var = tk.StringVar()
        self.example_combo = ttk.Combobox(
            buttons, textvariable=self.example_var, state="readonly",
            style="Dark.TCombobox", font=("Courier", 9), width=40
        )
        self.example_combo.pack(side=tk.RIGHT)
        self.example_combo.bind("<<ComboboxSelected>>", self._on_example)
        tk.Label(buttons, text="Examples:", fg=C["fg_dim"], bg=C["bg_mid"],
                 font=("Courier", 9)).pack(side=tk.RIGHT, padx=4)

        out_bar = tk.Frame(codec, bg=C["bg_mid"])
        out_bar.pack(fill=tk.X)
        tk.Label(out_bar, text="Output", fg=C["fg_dim"], bg=C["bg_mid"],
                 font=("Courier", 9)).pack(side=tk.LEFT)
        _button(out_bar, "📋 Copy", self._copy_output,
                font=("Courier", 9)).pack(side=tk.RIGHT)

        self.output_box = scrolledtext.ScrolledText(
            codec, bg="#1a1b26", fg=C["ok"], font=("Courier", 10),
            height=4, wrap=tk.WORD, relief=tk.FLAT, state=tk.DISABLED,
        )
        self.output_box.pack(fill=tk.X, pady=(2, 4))

        # ── URL parameter panel ───────────────────────────────────────────────
        params = tk.Frame(self.root, bg=C["bg_mid"], padx=8, pady=4)
        params.pack(fill=tk.X, pady=(4, 0))

        url_bar = tk.Frame(params, bg=C["bg_mid"])
        url_bar.pack(fill=tk.X)
        self.url_var = tk.StringVar()
        url_entry = _entry(url_bar, self.url_var)
        url_entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        url_entry.bind("<Return>", lambda _e: self._parse_url())
        _button(url_bar, "Parse URL", self._parse_url, fg=C["fg_accent"]).pack(
            side=tk.LEFT, padx=(4, 0))

        self.base_label = tk.Label(
            params, text="Base URL: —", anchor=tk.W, fg=C["fg_dim"], bg=C["bg_mid"],
            font=("Courier", 9)
        )
        self.base_label.pack(fill=tk.X, pady=(4, 2))

        self._rows_frame = tk.Frame(params, bg=C["bg_mid"])
        self._rows_frame.pack(fill=tk.X)

        param_bar = tk.Frame(params, bg=C["bg_mid"], pady=4)
        param_bar.pack(fill=tk.X)
        _button(param_bar, "+ Add parameter", self._add_param, fg=C["ok"]).pack(side=tk.LEFT)
        _button(param_bar, "→ Load into encoder", self._load_url_to_encoder).pack(
            side=tk.RIGHT, padx=3)
        _button(param_bar, "📋 Copy URL", self._copy_url).pack(side=tk.RIGHT, padx=3)

        self.encoded_label = tk.Label(
            params, text="", anchor=tk.W, justify=tk.LEFT, fg=C["ok"], bg=C["bg_mid"],
            font=("Courier", 9), wraplength=700
        )
        self.encoded_label.pack(fill=tk.X)
        self.decoded_label = tk.Label(
            params, text="", anchor=tk.W, justify=tk.LEFT, fg=C["fg_purple"],
            bg=C["bg_mid"], font=("Courier", 9), wraplength=700
        )
        self.decoded_label.pack(fill=tk.X)
        self.dupe_label = tk.Label(
            params, text="", anchor=tk.W, fg=C["warn"], bg=C["bg_mid"], font=("Courier", 9)
        )
        self.dupe_label.pack(fill=tk.X)

        # ── Log ───────────────────────────────────────────────────────────────
        log_frame = tk.Frame(self.root, bg=C["bg_log"])
        log_frame.pack(fill=tk.BOTH, expand=True, padx=4, pady=(4, 0))

        self.log = scrolledtext.ScrolledText(
            log_frame, bg=C["bg_log"], fg=C["fg"],
            font=("Courier", 9), state=tk.DISABLED,
            wrap=tk.WORD, relief=tk.FLAT, height=6,
        )
        self.log.pack(fill=tk.BOTH, expand=True)

        for tag, colour in [
            ("ts", C["fg_dim"]), ("ok", C["ok"]), ("err", C["err"]),
            ("info", C["fg_accent"]), ("warn", C["warn"]),
        ]:
            self.log.tag_config(tag, foreground=colour)

        # ── Status bar ────────────────────────────────────────────────────────
        self.statusbar = tk.Label(
            self.root, text="Ready", anchor=tk.W,
            bg=C["bg_dark"], fg=C["fg_dim"], font=("Courier", 9), padx=6
        )
        self.statusbar.pack(fill=tk.X, side=tk.BOTTOM)

        self._update_process_label()

    def _apply_styles(self):
        style = ttk.Style()
        style.theme_use("clam")
        style.configure(
            "Dark.TCombobox",
            fieldbackground=C["bg_input"], background=C["bg_input"],
            foreground=C["fg"], selectbackground="#6272a4",
            selectforeground=C["fg"], arrowcolor=C["fg"],
        )
        style.map("Dark.TCombobox", fieldbackground=[("readonly", C["bg_input"])])

    # ── Logging ───────────────────────────────────────────────────────────────

    def _log(self, message: str, tag: str = "info", operation: str = ""):
        if self.db:
            self.db.log(message, tag, operation)

        def _write():
            self.log.config(state=tk.NORMAL)
            ts = datetime.now().strftime("%H:%M:%S")
            self.log.insert(tk.END, f"[{ts}] ", "ts")
            self.log.insert(tk.END, f"{message}\n", tag)
            line_count = int(self.log.index("end-1c").split(".")[0])
            if line_count > self.MAX_LOG_LINES:
                self.log.delete("1.0", f"{line_count - self.MAX_LOG_LINES}.0")
            self.log.config(state=tk.DISABLED)
            self.log.see(tk.END)
        self.root.after(0, _write)

    def _set_status(self, text: str):
        self.statusbar.config(text=text)

    def _report(self, exc: Exception):
        """Show a caught error in the status bar."""
        self.error_count += 1
        if isinstance(exc, EmptyInputError):
            title = "Empty URL" if "URL" in str(exc) else "Empty Input"
        else:
            title = next((t for cls, t in ERROR_TITLES if isinstance(exc, cls)), "Error")
        self._set_status(f"{title}: {exc}")

    def _ok(self, text: str):
        self.op_count += 1
        self._set_status(f"{text} @ {datetime.now().strftime('%H:%M:%S')}")

    # ── Encode / decode ───────────────────────────────────────────────────────

    def _pull_codec(self):
        self.wb.input_text = self.input_box.get("1.0", "end-1c")

    def _push_codec(self):
        self.input_box.delete("1.0", tk.END)
        self.input_box.insert(tk.END, self.wb.input_text)
        self.output_box.config(state=tk.NORMAL)
        self.output_box.delete("1.0", tk.END)
        self.output_box.insert(tk.END, self.wb.output_text)
        self.output_box.config(state=tk.DISABLED)
        if self.mode_var.get() != self.wb.mode:
            self.mode_var.set(self.wb.mode)
            self._update_process_label()
            self._refresh_examples()

    def _update_process_label(self):
        label = "▶ Encode" if self.wb.mode == ENCODE else "▶ Decode"
        self.process_btn.config(text=label)

    def _refresh_examples(self):
        self.example_combo["values"] = get_examples(self.cfg, self.wb.mode)
        self.example_var.set("")

    def _on_mode_change(self):
        self.wb.set_mode(self.mode_var.get())
        self._update_process_label()
        self._refresh_examples()

    def _on_example(self, _event=None):
        self.wb.load_example(self.example_var.get())
        self._push_codec()

    def _process(self):
        self._pull_codec()
        try:
            self.wb.process()
        except (EmptyInputError, percent_codec.CodecError) as exc:
            self._report(exc)
            return
        self._push_codec()
        self._ok(f"{self.wb.mode.title()} OK")

    def _swap(self):
        self._pull_codec()
        self.wb.swap()
        self._push_codec()

    def _clear(self):
        self.wb.clear()
        self._push_codec()
        self._set_status("Cleared")

    def _copy_output(self):
        if self.wb.copy_output():
            self._ok("Result copied to clipboard")
        elif self.wb.output_text:
            self._set_status("Copy Failed: could not write to the clipboard")

    # ── URL parameters ────────────────────────────────────────────────────────

    def _parse_url(self):
        try:
            self.wb.parse_url(self.url_var.get())
        except (EmptyInputError, url_params.InvalidUrlError) as exc:
            self._report(exc)
            return
        self._rebuild_rows()
        self._ok("URL parsed")

    def _rebuild_rows(self, focus_id: str = None):
        for row in self._rows:
            row.destroy()
        self._rows = []
        parsed = self.wb.parsed_url
        if parsed is not None:
            self.base_label.config(text=f"Base URL: {parsed.base_url}")
            for param in parsed.params:
                row = ParamRow(self._rows_frame, self, param)
                self._rows.append(row)
                if param.id == focus_id:
                    row.focus_key()
        self._highlight_editing()
        self._refresh_reconstructed()

    def _highlight_editing(self):
        for row in self._rows:
            row.set_editing(row.param_id == self.wb.editing_param_id)

    def _refresh_reconstructed(self):
        try:
            encoded = self.wb.reconstructed_url()
            decoded = self.wb.decoded_url()
        except url_params.InvalidUrlError as exc:
            self._log(f"✗ {exc}", "err", "reconstruct")
            self._log(traceback.format_exc(), "err", "reconstruct")
            self._report(exc)
            return
        self.encoded_label.config(text=f"Encoded: {encoded}" if encoded else "")
        self.decoded_label.config(text=f"Decoded: {decoded}" if decoded else "")
        dupes = self.wb.duplicate_keys()
        self.dupe_label.config(
            text=f"⚠ Repeated key(s) {', '.join(dupes)}: only the last value is kept"
            if dupes else ""
        )

    def _start_editing(self, param_id: str):
        self.wb.start_editing(param_id)
        self._highlight_editing()

    def _on_param_edit(self, param_id: str, key: str, value: str):
        self.wb.update_param(param_id, key, value)
        self._refresh_reconstructed()

    def _add_param(self):
        param = self.wb.add_param()
        if param is None:
            self._set_status("Parse a URL first")
            return
        self._rebuild_rows(focus_id=param.id)

    def _delete_param(self, param_id: str):
        self.wb.delete_param(param_id)
        self._rebuild_rows()

    def _copy_url(self):
        if self.wb.copy_reconstructed_url():
            self._ok("Reconstructed URL copied to clipboard")
        elif self.wb.parsed_url is not None:
            self._set_status("Copy Failed: could not write to the clipboard")

    def _load_url_to_encoder(self):
        try:
            self.wb.load_url_to_encoder()
        except url_params.InvalidUrlError as exc:
            self._report(exc)
            return
        self._push_codec()

    # ── Controls ──────────────────────────────────────────────────────────────

    def _show_session_log(self):
        if not self.db:
            self._set_status("Session log unavailable: started with --no-db")
            return
        SessionLogWindow(self.root, self.db)

    def _on_close(self):
        self._log(
            f"Closing: {self.op_count} operation(s), {self.error_count} error(s)", "info"
        )
        if self.db:
            self.db.close(actions=self.op_count, errors=self.error_count)
        self.root.destroy()


# ─── Entry point ──────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Percent-encode/decode text and edit URL query parameters."
    )
    parser.add_argument("--config", "-c", default=default_ini_path(),
                        help="Path to urltool.ini (default: <script dir>/urltool.ini).")
    parser.add_argument("--db", default=str(Path(__file__).parent),
                        help="SQLite log file, or folder for urltool.db "
                             "(default: <script dir>).")
    parser.add_argument("--no-db", action="store_true",
                        help="Do not write the operation log to SQLite.")
    parser.add_argument("--text", "-t", default=None,
                        help="Prefill the encoder input.")
    parser.add_argument("--url", "-u", default=None,
                        help="Prefill and parse a URL in the parameter editor.")
    return parser.parse_args(argv)


def main():
    args = parse_args()
    cfg = load_ini(args.config)
    db = None if args.no_db else DBLogger(args.db, label=args.config)
    root = tk.Tk()
    try:
        UrlToolApp(root, cfg, db_logger=db,
                   initial_text=args.text, initial_url=args.url)
        root.mainloop()
    finally:
        # no-op if the window already closed the session
        if db:
            db.close()


if __name__ == "__main__":
    main()

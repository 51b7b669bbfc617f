import pyperclip
import pytest

from percent_codec import DecodingError
from url_params import InvalidUrlError
from workbench import DECODE, ENCODE, EmptyInputError, Workbench


@pytest.fixture
def logged():
    return []


@pytest.fixture
def wb(logged):
    return Workbench(log_fn=lambda message, tag, operation: logged.append((tag, operation, message)))


@pytest.fixture
def clipboard(monkeypatch):
    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)
    return copied


# --- Encode / decode ---


def test_process_encode(wb, logged):
    wb.input_text = "hello world"
    assert wb.process() == "hello%20world"
    assert wb.output_text == "hello%20world"
    assert logged[-1][:2] == ("ok", "process")


def test_process_decode(wb):
    wb.set_mode(DECODE)
    wb.input_text = "caf%C3%A9"
    wb.process()
    assert wb.output_text == "café"


def test_process_blank_input(wb, logged):
    wb.input_text = "   "
    wb.output_text = "previous"
    with pytest.raises(EmptyInputError):
        wb.process()
    assert wb.output_text == "previous"
    assert logged[-1][0] == "warn"


def test_process_decode_error_leaves_output(wb, logged):
    wb.set_mode(DECODE)
    wb.input_text = "100%zz"
    wb.output_text = "previous"
    with pytest.raises(DecodingError):
        wb.process()
    assert wb.output_text == "previous"
    assert wb.input_text == "100%zz"
    assert logged[-1][0] == "err"


def test_set_mode_rejects_unknown(wb):
    with pytest.raises(ValueError):
        wb.set_mode("rot13")
    assert wb.mode == ENCODE


def test_unknown_initial_mode_defaults_to_encode():
    assert Workbench(mode="sideways").mode == ENCODE


def test_swap(wb):
    wb.input_text = "a b"
    wb.process()
    wb.swap()
    assert (wb.input_text, wb.output_text, wb.mode) == ("a%20b", "a b", DECODE)
    wb.process()
    assert wb.output_text == "a b"


def test_clear_and_load_example(wb):
    wb.input_text, wb.output_text = "x", "y"
    wb.clear()
    assert (wb.input_text, wb.output_text) == ("", "")

    wb.output_text = "stale"
    wb.load_example("https://example.com/search?q=hello world")
    assert wb.input_text == "https://example.com/search?q=hello world"
    assert wb.output_text == ""


def test_works_without_log_fn():
    wb = Workbench()
    wb.input_text = "a"
    assert wb.process() == "a"


# --- URL parameters ---


def test_nothing_parsed_yet(wb):
    assert wb.add_param() is None
    wb.update_param("p1", "a", "b")
    wb.delete_param("p1")
    assert wb.reconstructed_url() == ""
    assert wb.decoded_url() == ""
    assert wb.duplicate_keys() == []


def test_parse_url(wb):
    parsed = wb.parse_url("https://example.com/a?b=1&c=2")
    assert wb.parsed_url is parsed
    assert wb.url_text == "https://example.com/a?b=1&c=2"
    assert wb.reconstructed_url() == "https://example.com/a?b=1&c=2"


def test_parse_url_blank(wb):
    with pytest.raises(EmptyInputError):
        wb.parse_url("  ")
    assert wb.parsed_url is None


def test_failed_parse_keeps_previous_url(wb, logged):
    first = wb.parse_url("https://example.com/?a=1")
    with pytest.raises(InvalidUrlError):
        wb.parse_url("not a url")
    assert wb.parsed_url is first
    assert logged[-1][:2] == ("err", "parse")


def test_reparse_replaces_model_and_editing(wb):
    wb.parse_url("https://example.com/?a=1")
    wb.add_param()
    wb.parse_url("https://other.example/")
    assert wb.parsed_url.params == []
    assert wb.editing_param_id is None


def test_add_edit_delete_flow(wb):
    wb.parse_url("https://example.com/list")
    param = wb.add_param()
    assert wb.editing_param_id == param.id
    assert wb.reconstructed_url() == "https://example.com/list"

    wb.update_param(param.id, "page", "3")
    assert wb.reconstructed_url() == "https://example.com/list?page=3"

    wb.delete_param(param.id)
    assert wb.editing_param_id is None
    assert wb.reconstructed_url() == "https://example.com/list"


def test_deleting_other_row_keeps_editing(wb):
    wb.parse_url("https://example.com/?a=1")
    first = wb.parsed_url.params[0]
    added = wb.add_param()
    wb.delete_param(first.id)
    assert wb.editing_param_id == added.id


def test_decoded_url(wb):
    wb.parse_url("https://example.com/")
    param = wb.add_param()
    wb.update_param(param.id, "name", "café")
    assert wb.reconstructed_url() == "https://example.com/?name=caf%C3%A9"
    assert wb.decoded_url() == "https://example.com/?name=café"


def test_duplicate_keys(wb):
    wb.parse_url("https://example.com/?q=1&x=2&q=3&x=4&q=5")
    assert wb.duplicate_keys() == ["q", "x"]
    assert wb.reconstructed_url() == "https://example.com/?q=5&x=4"


def test_load_url_to_encoder(wb):
    wb.set_mode(DECODE)
    wb.output_text = "stale"
    wb.parse_url("https://example.com/?q=a b")
    wb.load_url_to_encoder()
    assert wb.input_text == "https://example.com/?q=a+b"
    assert wb.output_text == ""
    assert wb.mode == ENCODE


def test_load_url_to_encoder_without_url(wb):
    wb.input_text = "keep"
    wb.load_url_to_encoder()
    assert wb.input_text == "keep"


# --- Clipboard ---


def test_copy_output(wb, clipboard):
    assert wb.copy_output() is False
    wb.input_text = "a b"
    wb.process()
    assert wb.copy_output() is True
    assert clipboard == ["a%20b"]


def test_copy_reconstructed_url(wb, clipboard):
    assert wb.copy_reconstructed_url() is False
    wb.parse_url("https://example.com/?q=1&q=2")
    assert wb.copy_reconstructed_url() is True
    assert clipboard == ["https://example.com/?q=2"]


def test_copy_failure_is_reported_not_raised(wb, logged, monkeypatch):
    def _broken(_text):
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(pyperclip, "copy", _broken)
    wb.input_text = "x"
    wb.process()
    assert wb.copy_output() is False
    assert logged[-1][:2] == ("err", "copy")


def test_copy_with_broken_base_url(wb, logged, clipboard):
    wb.parse_url("https://example.com/")
    wb.parsed_url.base_url = "not a url"
    assert wb.copy_reconstructed_url() is False
    assert clipboard == []
    assert logged[-1][0] == "err"


def test_keystroke_edits_are_not_logged(wb, logged):
    wb.parse_url("https://example.com/?a=1")
    param_id = wb.parsed_url.params[0].id
    before = len(logged)
    wb.start_editing(param_id)
    for partial in ("b", "bo", "boo"):
        wb.update_param(param_id, value=partial)
    assert len(logged) == before
    assert wb.editing_param_id == param_id
    assert wb.parsed_url.params[0].value == "boo"

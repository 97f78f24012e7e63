from kiro_bridge.sanitize import (
    clean_output_lines,
    is_context_overflow,
    sanitize_output,
    strip_ansi_escapes,
)


def test_strip_ansi_removes_color_and_cursor_sequences():
    raw = "\x1b[1;32mHello\x1b[0m \x1b[2Kworld\x1b[?25h!"

    assert strip_ansi_escapes(raw) == "Hello world!"


def test_strip_ansi_consumes_whole_sequence_before_copying_resumes():
    # Digits and separators inside the sequence never leak into the output.
    assert strip_ansi_escapes("a\x1b[38;5;208mb") == "ab"
    assert strip_ansi_escapes("\x1b[12;34Hxyz") == "xyz"


def test_strip_ansi_keeps_lone_escape_and_plain_brackets():
    assert strip_ansi_escapes("a\x1bb [not escape]") == "a\x1bb [not escape]"
    assert strip_ansi_escapes("trailing\x1b") == "trailing\x1b"


def test_strip_ansi_unterminated_sequence_drops_rest():
    assert strip_ansi_escapes("ok\x1b[0;1") == "ok"


def test_clean_output_lines_strips_prompt_prefix_and_m_artifacts():
    raw = "> first linem\n> second linemm\nthird\n\n"

    assert clean_output_lines(raw) == "first line\nsecond line\nthird"


def test_clean_output_lines_only_strips_one_suffix():
    assert clean_output_lines("summ") == "su"
    assert clean_output_lines("sum") == "su"
    assert clean_output_lines(">no space") == ">no space"


def test_sanitize_output_decodes_bytes_and_runs_all_stages():
    raw = "\x1b[32m> Here is the chart:\x1b[0m\n![chart](file:///tmp/c.png)\n".encode()

    assert sanitize_output(raw) == "Here is the chart:\n[IMAGE:/tmp/c.png]"


def test_sanitize_output_wraps_bare_paths():
    raw = "> Screenshot saved to /tmp/screen.png\n"

    assert sanitize_output(raw) == "Screenshot saved to [IMAGE:/tmp/screen.png]"


def test_sanitize_output_replaces_invalid_utf8():
    assert sanitize_output(b"caf\xff ok") == "caf\ufffd ok"


def test_context_overflow_detection_is_case_insensitive():
    assert is_context_overflow("Error: The Context Window Has Overflowed, please compact")
    assert not is_context_overflow("context window is fine")

import pytest

from kiro_bridge.attachments import (
    Attachment,
    AttachmentKind,
    TargetLocation,
    classify,
    detect_bare_image_paths,
    is_local_path,
    markdown_images_to_markers,
    parse_attachment_markers,
    synthesize_markers,
)


def test_parse_single_image():
    text, attachments = parse_attachment_markers("Check this [IMAGE:/tmp/a.png]")

    assert text == "Check this"
    assert attachments == [Attachment(kind=AttachmentKind.IMAGE, target="/tmp/a.png")]


def test_parse_multiple_attachments_keeps_source_order():
    text, attachments = parse_attachment_markers(
        "Report\n[IMAGE:https://example.com/a.png]\n[DOCUMENT:/tmp/report.pdf]"
    )

    assert text == "Report"
    assert [a.kind for a in attachments] == [AttachmentKind.IMAGE, AttachmentKind.DOCUMENT]
    assert [a.target for a in attachments] == ["https://example.com/a.png", "/tmp/report.pdf"]


def test_parse_preserves_non_markers():
    text, attachments = parse_attachment_markers("Hello [world] and [not:a:marker]")

    assert text == "Hello [world] and [not:a:marker]"
    assert attachments == []


def test_parse_keeps_inner_spacing_around_removed_markers():
    text, attachments = parse_attachment_markers(
        "Check this report [IMAGE:/tmp/chart.png] and [DOCUMENT:/tmp/report.pdf]"
    )
    assert text == "Check this report  and"
    assert len(attachments) == 2

    text, attachments = parse_attachment_markers(
        "Screenshot: [IMAGE:/tmp/screen.png]\nVideo: [VIDEO:https://example.com/demo.mp4]"
    )
    assert text == "Screenshot: \nVideo:"
    assert attachments[1].kind is AttachmentKind.VIDEO
    assert attachments[1].target == "https://example.com/demo.mp4"


def test_parse_without_brackets_only_trims():
    text, attachments = parse_attachment_markers("  plain text, no markers  \n")

    assert text == "plain text, no markers"
    assert attachments == []


@pytest.mark.parametrize(
    "span",
    ["[IMAGE:]", "[IMAGE:   ]", "[IMAGE /tmp/a.png]", "[SCREENSHOT:/tmp/a.png]", "[]"],
)
def test_parse_preserves_invalid_markers_verbatim(span: str):
    text, attachments = parse_attachment_markers(f"before {span} after")

    assert text == f"before {span} after"
    assert attachments == []


def test_parse_unclosed_bracket_copies_remainder():
    text, attachments = parse_attachment_markers("see [IMAGE:/tmp/a.png] and [IMAGE:/tmp/b.png")

    assert text == "see  and [IMAGE:/tmp/b.png"
    assert [a.target for a in attachments] == ["/tmp/a.png"]


def test_parse_synonyms_and_case_normalize_to_canonical_kind():
    text, attachments = parse_attachment_markers(
        "[photo:/tmp/p.jpg][ File : /tmp/f.txt ][Voice:/tmp/v.ogg][audio:/tmp/a.mp3]"
    )

    assert text == ""
    assert [a.kind for a in attachments] == [
        AttachmentKind.IMAGE,
        AttachmentKind.DOCUMENT,
        AttachmentKind.VOICE,
        AttachmentKind.AUDIO,
    ]
    assert attachments[1].target == "/tmp/f.txt"
    assert attachments[1].marker == "[DOCUMENT:/tmp/f.txt]"


def test_parse_first_closing_bracket_ends_marker():
    text, attachments = parse_attachment_markers("[IMAGE:/tmp/a]b.png]")

    assert attachments == [Attachment(kind=AttachmentKind.IMAGE, target="/tmp/a")]
    assert text == "b.png]"


def test_parse_splits_target_on_first_colon_only():
    _, attachments = parse_attachment_markers("[DOCUMENT:https://example.com:8443/r.pdf]")

    assert attachments[0].target == "https://example.com:8443/r.pdf"


def test_attachment_kind_marker_names_round_trip():
    for kind in AttachmentKind:
        assert AttachmentKind.from_marker(kind.marker_name()) is kind

    assert AttachmentKind.IMAGE.marker_name() == "IMAGE"
    assert AttachmentKind.DOCUMENT.marker_name() == "DOCUMENT"
    assert AttachmentKind.VIDEO.marker_name() == "VIDEO"
    assert AttachmentKind.AUDIO.marker_name() == "AUDIO"
    assert AttachmentKind.VOICE.marker_name() == "VOICE"
    assert AttachmentKind.from_marker("sticker") is None


def test_is_local_path_detection():
    assert is_local_path("/tmp/file.png")
    assert is_local_path("~/file.png")
    assert is_local_path("./file.png")
    assert is_local_path("ftp://example.com/file.png")
    assert is_local_path("HTTPS://example.com/file.png")
    assert not is_local_path("http://example.com/file.png")
    assert not is_local_path("https://example.com/file.png")


def test_classify_and_attachment_locality():
    assert classify("https://example.com/a.png") is TargetLocation.REMOTE
    assert classify("relative/a.png") is TargetLocation.LOCAL
    assert Attachment(AttachmentKind.IMAGE, "/tmp/a.png").is_local
    assert not Attachment(AttachmentKind.IMAGE, "http://example.com/a.png").is_local


def test_markdown_file_url_becomes_marker():
    assert markdown_images_to_markers("![chart](file:///tmp/c.png)") == "[IMAGE:/tmp/c.png]"


def test_markdown_absolute_path_without_alt_is_converted():
    assert markdown_images_to_markers("see ![](/tmp/c.png) now") == "see [IMAGE:/tmp/c.png] now"


def test_markdown_relative_target_needs_alt_text():
    assert markdown_images_to_markers("![](images/c.png)") == "![](images/c.png)"
    assert markdown_images_to_markers("![ ](images/c.png)") == "![ ](images/c.png)"
    assert markdown_images_to_markers("![logo](https://example.com/l.png)") == (
        "[IMAGE:https://example.com/l.png]"
    )


def test_bare_image_paths_are_wrapped_with_punctuation_kept():
    text = "Saved to /tmp/shot.PNG, and (/var/data/plot.jpeg)."

    assert detect_bare_image_paths(text) == (
        "Saved to [IMAGE:/tmp/shot.PNG], and ([IMAGE:/var/data/plot.jpeg])."
    )


def test_bare_path_detection_ignores_non_images_and_relative_paths():
    text = "Logs in /tmp/run.log, image at ./out/plot.png and images/a.gif"

    assert detect_bare_image_paths(text) == text


def test_bare_path_detection_skips_already_wrapped_paths():
    text = "[IMAGE:/tmp/a.png] is also at /tmp/a.png"

    assert detect_bare_image_paths(text) == text


def test_bare_path_detection_wraps_each_path_once():
    text = "/tmp/a.png then /tmp/b.webp then /tmp/a.png"

    assert detect_bare_image_paths(text) == (
        "[IMAGE:/tmp/a.png] then [IMAGE:/tmp/b.webp] then /tmp/a.png"
    )


def test_bare_path_detection_is_idempotent():
    text = "**/tmp/a.png** and\n\t`/tmp/b.bmp` plus [DOCUMENT:/tmp/c.gif] and /tmp/c.gif"

    once = detect_bare_image_paths(text)
    assert once == (
        "**[IMAGE:/tmp/a.png]** and\n\t`[IMAGE:/tmp/b.bmp]` plus [DOCUMENT:/tmp/c.gif] and /tmp/c.gif"
    )
    assert detect_bare_image_paths(once) == once


@pytest.mark.parametrize("text", ["saved /tmp/a]/b.png", "saved /tmp/[draft]/b.png and /tmp/c[1].gif"])
def test_bare_paths_with_brackets_are_left_alone(text: str):
    once = detect_bare_image_paths(text)

    assert once == text
    assert detect_bare_image_paths(once) == once
    assert parse_attachment_markers(once) == (text, [])


def test_bare_path_next_to_closing_bracket_round_trips():
    once = detect_bare_image_paths("(see /tmp/a.png]")

    assert once == "(see [IMAGE:/tmp/a.png]]"
    assert detect_bare_image_paths(once) == once
    assert parse_attachment_markers(once) == (
        "(see ]",
        [Attachment(kind=AttachmentKind.IMAGE, target="/tmp/a.png")],
    )


def test_markdown_target_with_brackets_is_not_converted():
    text = "![chart](/tmp/a]/c.png) and ![x](file:///tmp/[1].png)"

    assert markdown_images_to_markers(text) == text
    assert synthesize_markers(text) == text


def test_synthesize_markers_combines_markdown_and_bare_paths():
    text = "Here: ![chart](file:///tmp/c.png)\nAlso /tmp/d.jpg"

    assert synthesize_markers(text) == "Here: [IMAGE:/tmp/c.png]\nAlso [IMAGE:/tmp/d.jpg]"

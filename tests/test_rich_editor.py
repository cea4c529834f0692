"""Tests for the rich text editing model and its image uploader."""

from __future__ import annotations

import io

import pytest

from rich_editor import EditorError, HttpImageUploader, RichTextEditor, UploadError


class _Uploader:
    def __init__(self, url=None, error=None):
        self.url = url
        self.error = error
        self.uploads = []

    def upload(self, stream, filename):
        self.uploads.append(filename)
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture()
def changes():
    return []


@pytest.fixture()
def editor(changes):
    return RichTextEditor("hello world", on_change=changes.append)


def test_bold_wraps_selection_and_reports_change(editor, changes):
    """Toolbar actions rewrite the selection and propagate at once."""
    editor.select(0, 5)
    editor.bold()

    assert editor.value == "<strong>hello</strong> world"
    assert changes == ["<strong>hello</strong> world"]


@pytest.mark.parametrize("action, tag", [("italic", "em"), ("underline", "u"), ("strikethrough", "s")])
def test_inline_formats(editor, action, tag):
    """Each inline format uses its own tag."""
    editor.select(6, 11)
    getattr(editor, action)()
    assert editor.value == f"hello <{tag}>world</{tag}>"


def test_format_block_and_invalid_block(editor, changes):
    """Headings wrap the selection; unknown blocks are refused untouched."""
    editor.select_all()
    editor.format_block("H2")
    assert editor.value == "<h2>hello world</h2>"

    with pytest.raises(EditorError):
        editor.format_block("script")
    assert editor.value == "<h2>hello world</h2>"
    assert len(changes) == 1


def test_insert_list_from_lines(changes):
    """Selected lines become list items."""
    editor = RichTextEditor("one\ntwo\n", on_change=changes.append)
    editor.select_all()

    editor.insert_list(ordered=True)

    assert editor.value == "<ol><li>one</li><li>two</li></ol>"


def test_align_and_color(editor):
    """Alignment and colour only accept known values."""
    editor.select(0, 5)
    editor.align("center")
    assert editor.value.startswith('<div style="text-align: center">hello</div>')

    editor.select_all()
    editor.set_color("#c00")
    assert editor.value.startswith('<span style="color: #c00">')

    with pytest.raises(EditorError):
        editor.align("middle")
    with pytest.raises(EditorError):
        editor.set_color("red; background: url(x)")


def test_insert_link_escapes_and_rejects_scripts(editor):
    """Links are escaped and javascript: URLs are refused."""
    editor.select(0, 5)
    editor.insert_link("https://cid.example.gov/?a=1&b=2")
    assert editor.value == '<a href="https://cid.example.gov/?a=1&amp;b=2">hello</a> world'

    with pytest.raises(EditorError):
        editor.insert_link("javascript:alert(1)")


def test_insert_link_with_text_at_caret():
    """With no selection the given text becomes the label."""
    editor = RichTextEditor("")
    editor.insert_link("/complaints/lodge", text="Lodge <now>")
    assert editor.value == '<a href="/complaints/lodge">Lodge &lt;now&gt;</a>'


def test_unlink_and_remove_format():
    """Links and inline formatting can be stripped from a selection."""
    editor = RichTextEditor('<a href="/x"><strong>news</strong></a>')
    editor.select_all()
    editor.unlink()
    assert editor.value == "<strong>news</strong>"

    editor.select_all()
    editor.remove_format()
    assert editor.value == "news"


def test_insert_table_and_rule(changes):
    """Tables get the requested shape; silly sizes are refused."""
    editor = RichTextEditor("", on_change=changes.append)

    editor.insert_table(2, 3)
    editor.insert_horizontal_rule()

    assert editor.value.count("<tr>") == 2
    assert editor.value.count("<td>") == 6
    assert editor.value.endswith("<hr>")
    with pytest.raises(EditorError):
        editor.insert_table(0, 2)
    assert len(changes) == 2


def test_select_is_clamped(editor):
    """Out-of-range and reversed selections are normalised."""
    editor.select(50, -3)
    assert editor.selection == (0, len("hello world"))


def test_external_value_applies_outside_local_edits(editor):
    """Owner updates land unless they echo the editor's own edit."""
    assert editor.set_value("<p>from server</p>") is True
    assert editor.value == "<p>from server</p>"
    assert editor.set_value("<p>from server</p>") is False


def test_echo_during_local_edit_is_ignored():
    """A controlled owner echoing the value back mid-change does not clobber it."""
    applied = []
    editor = RichTextEditor("text")

    def on_change(html):
        applied.append(editor.set_value("<p>stale</p>"))

    editor.on_change = on_change
    editor.select_all()
    editor.italic()

    assert applied == [False]
    assert editor.value == "<em>text</em>"
    assert editor.set_value("<p>later</p>") is True


def test_upload_image_inserts_at_caret(changes):
    """A successful upload inserts an img at the caret."""
    uploader = _Uploader(url="/uploads/image-1-2.png")
    editor = RichTextEditor("ab", on_change=changes.append, uploader=uploader)
    editor.select(1)

    url = editor.upload_image(io.BytesIO(b"png"), "map.png", alt="Map")

    assert url == "/uploads/image-1-2.png"
    assert editor.value == 'a<img src="/uploads/image-1-2.png" alt="Map">b'
    assert uploader.uploads == ["map.png"]


def test_failed_upload_notifies_and_inserts_nothing(changes):
    """Upload failures reach the user and leave the content alone."""
    notices = []
    editor = RichTextEditor("ab", on_change=changes.append, uploader=_Uploader(error=UploadError("File too large")),
                            notify=notices.append)

    assert editor.upload_image(io.BytesIO(b"x"), "big.png") is None
    assert editor.value == "ab"
    assert changes == []
    assert notices == ["Image upload failed: File too large"]


def test_upload_without_uploader_notifies():
    """Without an uploader the user is told uploads are unavailable."""
    notices = []
    editor = RichTextEditor("", notify=notices.append)
    assert editor.upload_image(io.BytesIO(b"x"), "a.png") is None
    assert notices == ["Image upload is not available"]


def test_http_uploader_against_portal(admin_transport):
    """The HTTP uploader stores the image through the admin endpoint."""
    editor = RichTextEditor("", uploader=HttpImageUploader("http://localhost", http=admin_transport))

    url = editor.upload_image(io.BytesIO(b"gif-bytes"), "seal.gif", alt="Seal")

    assert url.startswith("/uploads/image-")
    assert editor.value == f'<img src="{url}" alt="Seal">'


def test_http_uploader_surfaces_server_errors(admin_transport):
    """Rejected files come back as UploadError with the server's reason."""
    uploader = HttpImageUploader("http://localhost", http=admin_transport)
    with pytest.raises(UploadError, match="Invalid data"):
        uploader.upload(io.BytesIO(b"x"), "notes.txt")


class _JsonResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        return self.payload


class _CannedHttp:
    def __init__(self, response):
        self.response = response

    def post(self, url, files=None, timeout=None):
        return self.response


@pytest.mark.parametrize("payload", [["not", "a", "dict"], {"url": 42}, {"url": "   "}, {}])
def test_unusable_upload_response_notifies(payload):
    """A success status without a usable URL is reported as a failed upload."""
    notices = []
    uploader = HttpImageUploader("http://localhost", http=_CannedHttp(_JsonResponse(200, payload)))
    editor = RichTextEditor("ab", uploader=uploader, notify=notices.append)

    assert editor.upload_image(io.BytesIO(b"x"), "a.png") is None
    assert editor.value == "ab"
    assert notices == ["Image upload failed: Upload response did not include a URL"]


def test_error_response_with_list_body_keeps_status():
    """An error body that is not an object still yields an UploadError."""
    uploader = HttpImageUploader("http://localhost", http=_CannedHttp(_JsonResponse(502, ["bad gateway"])))
    with pytest.raises(UploadError, match="HTTP 502"):
        uploader.upload(io.BytesIO(b"x"), "a.png")


def test_insert_image_rejects_non_string_url(editor):
    """Only string URLs can become images."""
    with pytest.raises(EditorError):
        editor.insert_image(42)
    assert editor.value == "hello world"

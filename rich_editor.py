"""Rich text editing model used by the admin content forms.

The editor holds an HTML string and a selection over it. Toolbar actions
rewrite the selected range and hand the new HTML to ``on_change`` straight
away. Image uploads go through an uploader object; a failed upload is reported
through ``notify`` and leaves the content as it was.
"""
import logging
import re

import requests
from markupsafe import escape

logger = logging.getLogger(__name__)

UPLOAD_PATH = '/api/admin/upload-image'

INLINE_TAGS = {'bold': 'strong', 'italic': 'em', 'underline': 'u', 'strikethrough': 's'}
BLOCK_TAGS = ('p', 'h1', 'h2', 'h3', 'h4', 'blockquote', 'pre')
ALIGNMENTS = ('left', 'center', 'right', 'justify')
MAX_TABLE_SIZE = 20

_HEX_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')
_NAMED_COLOR = re.compile(r'^[a-zA-Z]{3,20}$')
_LINK_URL = re.compile(r'^(?:https?://[^\s"<>]+|mailto:[^\s"<>]+|/[^\s"<>]*|#[^\s"<>]*)$', re.IGNORECASE)
_IMAGE_URL = re.compile(r'^(?:https?://[^\s"<>]+|/[^\s"<>]*)$', re.IGNORECASE)
_ANCHOR_TAG = re.compile(r'</?a\b[^>]*>', re.IGNORECASE)
_FORMAT_TAG = re.compile(r'</?(?:strong|b|em|i|u|s|strike|span|font)\b[^>]*>', re.IGNORECASE)


class EditorError(ValueError):
    pass


class UploadError(Exception):
    pass


class HttpImageUploader:
    """Posts editor images to the portal's upload endpoint and returns the stored URL."""

    def __init__(self, base_url, http=None, timeout=30):
        self.base_url = base_url.rstrip('/')
        self.http = http or requests.Session()
        self.timeout = timeout

    def upload(self, stream, filename):
        try:
            response = self.http.post(self.base_url + UPLOAD_PATH, files={'image': (filename, stream)},
                                      timeout=self.timeout)
        except requests.RequestException as exc:
            raise UploadError(str(exc)) from exc
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        if response.status_code >= 400:
            raise UploadError(payload.get('message') or f'HTTP {response.status_code}')
        url = payload.get('url')
        if not isinstance(url, str) or not url.strip():
            raise UploadError('Upload response did not include a URL')
        return url


class RichTextEditor:
    def __init__(self, value='', on_change=None, uploader=None, notify=None):
        self.value = value or ''
        self.on_change = on_change
        self.uploader = uploader
        self.notify = notify
        self.selection = (len(self.value), len(self.value))
        self._propagating = False

    @property
    def selected_text(self):
        start, end = self.selection
        return self.value[start:end]

    def set_value(self, html):
        """Apply a value coming from the owner; ignored while a local edit is propagating."""
        html = html or ''
        if self._propagating or html == self.value:
            return False
        self.value = html
        self.selection = (len(html), len(html))
        return True

    def select(self, start, end=None):
        if end is None:
            end = start
        size = len(self.value)
        start, end = sorted((max(0, min(start, size)), max(0, min(end, size))))
        self.selection = (start, end)

    def select_all(self):
        self.selection = (0, len(self.value))

    # --- toolbar ---

    def bold(self):
        self._wrap(INLINE_TAGS['bold'])

    def italic(self):
        self._wrap(INLINE_TAGS['italic'])

    def underline(self):
        self._wrap(INLINE_TAGS['underline'])

    def strikethrough(self):
        self._wrap(INLINE_TAGS['strikethrough'])

    def format_block(self, tag):
        tag = (tag or '').lower()
        if tag not in BLOCK_TAGS:
            raise EditorError(f'Unsupported block format: {tag}')
        self._wrap(tag)

    def insert_list(self, ordered=False):
        tag = 'ol' if ordered else 'ul'
        lines = [line.strip() for line in self.selected_text.splitlines() if line.strip()] or ['']
        items = ''.join(f'<li>{line}</li>' for line in lines)
        self._replace_selection(f'<{tag}>{items}</{tag}>')

    def align(self, alignment):
        if alignment not in ALIGNMENTS:
            raise EditorError(f'Unsupported alignment: {alignment}')
        self._wrap('div', f' style="text-align: {alignment}"')

    def set_color(self, color):
        color = (color or '').strip()
        if not (_HEX_COLOR.match(color) or _NAMED_COLOR.match(color)):
            raise EditorError(f'Invalid colour: {color!r}')
        self._wrap('span', f' style="color: {color}"')

    def insert_link(self, url, text=None):
        url = (url or '').strip()
        if not _LINK_URL.match(url):
            raise EditorError(f'Invalid link URL: {url!r}')
        if text is not None:
            label = str(escape(text))
        else:
            label = self.selected_text or str(escape(url))
        self._replace_selection(f'<a href="{escape(url)}">{label}</a>')

    def unlink(self):
        start, end = self.selection
        if start == end:
            return
        self._replace_selection(_ANCHOR_TAG.sub('', self.selected_text))

    def remove_format(self):
        start, end = self.selection
        if start == end:
            return
        self._replace_selection(_FORMAT_TAG.sub('', self.selected_text))

    def insert_image(self, url, alt=''):
        if not isinstance(url, str) or not _IMAGE_URL.match(url.strip()):
            raise EditorError(f'Invalid image URL: {url!r}')
        url = url.strip()
        self._replace_selection(f'<img src="{escape(url)}" alt="{escape(alt)}">')

    def insert_table(self, rows=2, cols=2):
        if not (1 <= rows <= MAX_TABLE_SIZE and 1 <= cols <= MAX_TABLE_SIZE):
            raise EditorError(f'Table size must be between 1 and {MAX_TABLE_SIZE}')
        row = '<tr>' + '<td>&nbsp;</td>' * cols + '</tr>'
        self._replace_selection(f'<table><tbody>{row * rows}</tbody></table>')

    def insert_horizontal_rule(self):
        self._replace_selection('<hr>')

    def upload_image(self, stream, filename, alt=''):
        """Upload an image and insert it at the caret. Returns the URL, or None when nothing was inserted."""
        if self.uploader is None:
            self._notify('Image upload is not available')
            return None
        try:
            url = self.uploader.upload(stream, filename)
            self.insert_image(url, alt)
        except (UploadError, EditorError) as exc:
            logger.warning('Image upload for %s failed: %s', filename, exc)
            self._notify(f'Image upload failed: {exc}')
            return None
        return url

    # --- internals ---

    def _wrap(self, tag, attrs=''):
        self._replace_selection(f'<{tag}{attrs}>{self.selected_text}</{tag}>')

    def _replace_selection(self, fragment):
        start, end = self.selection
        self.value = self.value[:start] + fragment + self.value[end:]
        caret = start + len(fragment)
        self.selection = (caret, caret)
        self._emit()

    def _emit(self):
        if self.on_change is None:
            return
        self._propagating = True
        try:
            self.on_change(self.value)
        finally:
            self._propagating = False

    def _notify(self, message):
        if self.notify is not None:
            self.notify(message)

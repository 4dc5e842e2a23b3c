# datavista_app/services/sanitize.py
from __future__ import annotations

from html import escape
from html.parser import HTMLParser

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "em", "h1", "h2", "h3", "h4", "h5", "h6",
    "hr", "i", "img", "li", "ol", "p", "pre", "span", "strong", "sub", "sup",
    "table", "tbody", "td", "th", "thead", "tr", "u", "ul",
}
VOID_TAGS = {"br", "hr", "img"}
ALLOWED_ATTRS = {
    "a": {"href", "title", "target", "rel"},
    "img": {"src", "alt", "title", "width", "height"},
    "td": {"colspan", "rowspan"},
    "th": {"colspan", "rowspan"},
}
# dropped together with everything inside them
DROP_CONTENT = {"script", "style", "iframe", "object", "embed", "template", "noscript"}
SAFE_SCHEMES = ("http://", "https://", "mailto:", "/", "#")


def _safe_url(value: str) -> bool:
    v = "".join((value or "").split()).lower()
    if v.startswith("data:image/") and ";base64," in v:
        return True
    return v.startswith(SAFE_SCHEMES) or ":" not in v.split("/", 1)[0]


class _Sanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.out: list[str] = []
        self._open: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in DROP_CONTENT:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in ALLOWED_TAGS:
            return
        kept = []
        for name, value in attrs:
            if name not in ALLOWED_ATTRS.get(tag, set()):
                continue
            if name in ("href", "src") and not _safe_url(value or ""):
                continue
            kept.append(f' {name}="{escape(value or "", quote=True)}"')
        if tag == "a" and any(k.startswith(' target=') for k in kept):
            kept = [k for k in kept if not k.startswith(" rel=")] + [' rel="noopener noreferrer"']
        self.out.append(f"<{tag}{''.join(kept)}>")
        if tag not in VOID_TAGS:
            self._open.append(tag)

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag in DROP_CONTENT and self._skip_depth:
            self._skip_depth -= 1

    def handle_endtag(self, tag):
        if tag in DROP_CONTENT:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth or tag not in self._open:
            return
        # close anything left open inside this tag
        while self._open:
            t = self._open.pop()
            self.out.append(f"</{t}>")
            if t == tag:
                break

    def handle_data(self, data):
        if not self._skip_depth:
            self.out.append(escape(data, quote=False))

    def result(self) -> str:
        self.close()
        while self._open:
            self.out.append(f"</{self._open.pop()}>")
        return "".join(self.out)


def sanitize_html(raw: str) -> str:
    """Allow-list cleanup for article HTML; comments and unknown tags are dropped."""
    if not raw:
        return ""
    parser = _Sanitizer()
    parser.feed(raw)
    return parser.result()

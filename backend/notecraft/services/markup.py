"""
NoteCraft Backend: Markup Renderer
====================================

What:  Minimal markdown-to-HTML renderer used to preview note content.
Why:   Notes are stored as raw text; the preview needs headings, emphasis,
       code, links and simple lists without pulling in a full markdown engine.
How:   An ordered list of rules rewrites a working copy of the text.

Rule order (pinned by tests, reordering silently changes output):
    normalize → escape → fenced_code → inline_code → headings
    → bold → italic → links → lists → paragraphs

Safety:
    Escaping runs before any substitution, so user text can never introduce
    markup of its own. Code produced by fenced_code / inline_code is swapped
    out for placeholders and restored only after the last rule, so later
    rules never rewrite code content. Links are emitted only for http(s),
    mailto and scheme-less targets.

Not supported: nested lists, tables, blockquotes, reference links.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Callable, List, NamedTuple

# ── Patterns ──────────────────────────────────────────────────────────────
_NEWLINES = re.compile(r"\r\n?")

# An '&' that does not already start a character reference
_BARE_AMPERSAND = re.compile(r"&(?!(?:[a-zA-Z][a-zA-Z0-9]*|#[0-9]+|#[xX][0-9a-fA-F]+);)")

# Non-greedy, so only balanced pairs match and an odd trailing fence stays literal
_FENCED_CODE = re.compile(r"```([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")

_HEADINGS = {
    level: re.compile(rf"^#{{{level}}}[ \t]+(.+)$", re.MULTILINE)
    for level in range(1, 7)
}

_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"\*([^*]+)\*")
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_URL_SCHEME = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_SAFE_SCHEMES = frozenset({"http", "https", "mailto"})
_CONTROL_AND_SPACE = re.compile(r"[\x00-\x20\x7f]")

_LIST_BLOCK = re.compile(r"^(?:-[ \t]+.+(?:\n|$))+", re.MULTILINE)
_LIST_MARKER = re.compile(r"^-[ \t]+")

_BLANK_LINES = re.compile(r"\n{2,}")
_STRUCTURAL_START = re.compile(r"^\s*(?:<h[1-6]|<ul|<pre|<p|<code|\x00\d+\x00)")

_PLACEHOLDER = re.compile(r"\x00(\d+)\x00")


def escape_html(text: str) -> str:
    """Escape the five HTML-sensitive characters, leaving existing entities intact."""
    text = _BARE_AMPERSAND.sub("&amp;", text)
    return (
        text.replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


def is_safe_url(url: str) -> bool:
    # Browsers decode entities and ignore embedded whitespace before reading the scheme
    probe = _CONTROL_AND_SPACE.sub("", html.unescape(url))
    scheme = _URL_SCHEME.match(probe)
    return scheme is None or scheme.group(1).lower() in _SAFE_SCHEMES


@dataclass
class _Working:
    """Mutable working copy plus the code fragments taken out of it."""

    text: str
    protected: List[str] = field(default_factory=list)

    def protect(self, markup: str) -> str:
        self.protected.append(markup)
        return f"\x00{len(self.protected) - 1}\x00"

    def restore(self) -> str:
        return _PLACEHOLDER.sub(lambda m: self.protected[int(m.group(1))], self.text)


class Rule(NamedTuple):
    name: str
    apply: Callable[[_Working], None]


# ── Rules ─────────────────────────────────────────────────────────────────

def _normalize(doc: _Working) -> None:
    doc.text = _NEWLINES.sub("\n", doc.text).replace("\x00", "")


def _escape(doc: _Working) -> None:
    doc.text = escape_html(doc.text)


def _fenced_code(doc: _Working) -> None:
    doc.text = _FENCED_CODE.sub(
        lambda m: doc.protect(f"<pre><code>{m.group(1)}</code></pre>"), doc.text
    )


def _inline_code(doc: _Working) -> None:
    doc.text = _INLINE_CODE.sub(lambda m: doc.protect(f"<code>{m.group(1)}</code>"), doc.text)


def _headings(doc: _Working) -> None:
    # Longest marker first so "######" is never read as "#" plus "#####"
    for level in range(6, 0, -1):
        doc.text = _HEADINGS[level].sub(rf"<h{level}>\1</h{level}>", doc.text)


def _bold(doc: _Working) -> None:
    doc.text = _BOLD.sub(r"<strong>\1</strong>", doc.text)


def _italic(doc: _Working) -> None:
    doc.text = _ITALIC.sub(r"<em>\1</em>", doc.text)


def _link(match: "re.Match[str]") -> str:
    label, url = match.group(1), match.group(2).strip()
    # A code span inside the target would restore as markup within href
    if _PLACEHOLDER.search(url) or not is_safe_url(url):
        return match.group(0)
    return f'<a href="{url}" target="_blank" rel="noreferrer noopener">{label}</a>'


def _links(doc: _Working) -> None:
    doc.text = _LINK.sub(_link, doc.text)


def _list_block(match: "re.Match[str]") -> str:
    block = match.group(0)
    items = "".join(
        f"<li>{_LIST_MARKER.sub('', line)}</li>" for line in block.strip().split("\n")
    )
    trailing = "\n" if block.endswith("\n") else ""
    return f"<ul>{items}</ul>{trailing}"


def _lists(doc: _Working) -> None:
    doc.text = _LIST_BLOCK.sub(_list_block, doc.text)


def _paragraphs(doc: _Working) -> None:
    blocks = []
    for block in _BLANK_LINES.split(doc.text):
        if not block.strip():
            continue
        if _STRUCTURAL_START.match(block):
            blocks.append(block)
        else:
            blocks.append("<p>" + block.replace("\n", "<br/>") + "</p>")
    doc.text = "\n".join(blocks)


RULES = (
    Rule("normalize", _normalize),
    Rule("escape", _escape),
    Rule("fenced_code", _fenced_code),
    Rule("inline_code", _inline_code),
    Rule("headings", _headings),
    Rule("bold", _bold),
    Rule("italic", _italic),
    Rule("links", _links),
    Rule("lists", _lists),
    Rule("paragraphs", _paragraphs),
)


def render(source: str) -> str:
    """
    Render note content to safe HTML.

    Pure and deterministic. Malformed markdown degrades to literal text;
    empty input renders to an empty string.
    """
    doc = _Working(text=source or "")
    for rule in RULES:
        rule.apply(doc)
    return doc.restore()

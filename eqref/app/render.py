"""Read-only reference substitution for rendered (HTML) output.

Unlike the live editor, this pass only recognizes comment-prefixed labels
(``%\\label{key}``) when numbering, so the two views can disagree on documents
that also declare uncommented labels.
"""

from __future__ import annotations

import logging
import re
from html.parser import HTMLParser
from typing import Optional

import markdown
from markupsafe import Markup, escape

from eqref.app.config import DEFAULT_PREFIX
from eqref.app.references import REF_PATTERN
from eqref.app.scanner import LabelCache, scan_comment_labels

logger = logging.getLogger(__name__)

# Text nodes are rewritten only when their direct parent is one of these.
SUBSTITUTE_PARENTS = {"p", "li", "div", "span"}
VOID_TAGS = {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "nl2br"]


class _ReferenceSubstituter(HTMLParser):
    """Re-emits HTML unchanged apart from resolved \\ref{key} text."""

    def __init__(self, labels: LabelCache, prefix: str) -> None:
        super().__init__(convert_charrefs=False)
        self.labels = labels
        self.prefix = str(escape(prefix))
        self.parts: list[str] = []
        self._stack: list[str] = []
        self._endtag_at: Optional[int] = None
        self.replaced = 0

    def _replace(self, match: re.Match[str]) -> str:
        ordinal = self.labels.ordinal_for(match.group("key"))
        if ordinal is None:
            return match.group(0)
        self.replaced += 1
        return f"{self.prefix}{ordinal}"

    def handle_starttag(self, tag: str, attrs) -> None:
        self.parts.append(self.get_starttag_text() or f"<{tag}>")
        if tag.lower() not in VOID_TAGS:
            self._stack.append(tag.lower())

    def handle_startendtag(self, tag: str, attrs) -> None:
        self.parts.append(self.get_starttag_text() or f"<{tag} />")

    def parse_endtag(self, i: int) -> int:
        # handle_endtag only gets the lowercased name
        self._endtag_at = i
        try:
            return super().parse_endtag(i)
        finally:
            self._endtag_at = None

    def _endtag_text(self, tag: str) -> str:
        if self._endtag_at is not None:
            end = self.rawdata.find(">", self._endtag_at)
            if end != -1:
                return self.rawdata[self._endtag_at : end + 1]
        return f"</{tag}>"

    def handle_endtag(self, tag: str) -> None:
        self.parts.append(self._endtag_text(tag))
        tag = tag.lower()
        if tag in self._stack:
            while self._stack:
                if self._stack.pop() == tag:
                    break

    def handle_data(self, data: str) -> None:
        parent: Optional[str] = self._stack[-1] if self._stack else None
        if parent in SUBSTITUTE_PARENTS and "\\ref{" in data:
            data = REF_PATTERN.sub(self._replace, data)
        self.parts.append(data)

    def handle_entityref(self, name: str) -> None:
        self.parts.append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self.parts.append(f"&#{name};")

    def handle_comment(self, data: str) -> None:
        self.parts.append(f"<!--{data}-->")

    def handle_decl(self, decl: str) -> None:
        self.parts.append(f"<!{decl}>")

    def handle_pi(self, data: str) -> None:
        self.parts.append(f"<?{data}>")

    def unknown_decl(self, data: str) -> None:
        # Marked sections end in "]>", CDATA sections in "]]>"
        closing = "]]>" if data.startswith("CDATA[") else "]>"
        self.parts.append(f"<![{data}{closing}")


def substitute_references(html: str, source: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Replace \\ref{key} in rendered HTML using labels found in ``source``."""
    labels = scan_comment_labels(source)
    if not labels or "\\ref{" not in html:
        return html
    parser = _ReferenceSubstituter(labels, prefix)
    parser.feed(html)
    parser.close()
    logger.debug("Substituted %d references in rendered output", parser.replaced)
    return "".join(parser.parts)


def render_markdown(source: str, prefix: str = DEFAULT_PREFIX) -> Markup:
    """Render markdown to HTML with equation references resolved."""
    html = markdown.markdown(source, extensions=MARKDOWN_EXTENSIONS)
    return Markup(substitute_references(html, source, prefix))

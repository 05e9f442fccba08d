"""Markdown rendering for question and choice text sent to web clients.

Authors type line breaks in single-line inputs as a literal ``\\n``. Those are
turned into real line breaks before the markdown pass, and every newline is
rendered as ``<br>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

_LITERAL_NEWLINE = "\\n"


@dataclass(slots=True)
class QuestionTextRenderer:
    """Converts authored question text into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html, "breaks": True})
            .enable("table")
            .enable("strikethrough")
        )

    @staticmethod
    def split_lines(text: str) -> list[str]:
        """Split authored text on literal and real line breaks."""
        return (text or "").replace(_LITERAL_NEWLINE, "\n").splitlines()

    def render_fragment(self, text: str) -> str:
        sanitized = "\n".join(self.split_lines(text)).strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, text: str) -> str:
        """Render a short piece of text such as a choice, without a paragraph wrapper."""
        sanitized = "\n".join(self.split_lines(text)).strip()
        return self._markdown.renderInline(sanitized)


renderer = QuestionTextRenderer()

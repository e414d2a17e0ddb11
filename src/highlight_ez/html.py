"""Serialize highlight events into line-oriented HTML."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from highlight_ez.highlighter import HighlightEnd, HighlightEvent, HighlightStart, Source

_ESCAPES = {
    "&": "&amp;",
    "'": "&#39;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
}


def escape(text: str) -> str:
    if not any(c in text for c in _ESCAPES):
        return text
    return "".join(_ESCAPES.get(c, c) for c in text)


AttributeCallback = Callable[[int], str]


class HtmlRenderer:
    """Accumulates escaped HTML, one entry per source line.

    Spans still open at a line break are closed before it and reopened after
    it, so every line is a self-contained fragment.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._current: list[str] = []
        self._open: list[int] = []
        self._attribute: AttributeCallback = lambda _h: ""

    def render(
        self,
        events: Iterable[HighlightEvent],
        source: bytes,
        attribute_callback: AttributeCallback,
    ) -> None:
        self._attribute = attribute_callback
        for event in events:
            if isinstance(event, HighlightStart):
                self._start(event.highlight)
            elif isinstance(event, HighlightEnd):
                self._end()
            elif isinstance(event, Source):
                self._text(
                    source[event.start : event.end].decode("utf-8", errors="replace"),
                    line_break_follows=source[event.end : event.end + 1] == b"\n",
                )
            else:  # pragma: no cover
                raise TypeError(f"unexpected highlight event: {event!r}")
        self._finish()

    def lines(self) -> Sequence[str]:
        return list(self._lines)

    def _start(self, highlight: int) -> None:
        self._open.append(highlight)
        self._current.append(self._open_tag(highlight))

    def _end(self) -> None:
        if self._open:
            self._open.pop()
            self._current.append("</span>")

    def _open_tag(self, highlight: int) -> str:
        attr = self._attribute(highlight)
        return f"<span {attr}>" if attr else "<span>"

    def _text(self, text: str, *, line_break_follows: bool = False) -> None:
        pieces = text.split("\n")
        last = len(pieces) - 1
        for i, piece in enumerate(pieces):
            if i > 0:
                self._break_line()
            # CRLF line endings: the carriage return is not part of the line.
            if (i < last or line_break_follows) and piece.endswith("\r"):
                piece = piece[:-1]
            if piece:
                self._current.append(escape(piece))

    def _break_line(self) -> None:
        self._current.extend("</span>" for _ in self._open)
        self._lines.append("".join(self._current))
        self._current = [self._open_tag(h) for h in self._open]

    def _finish(self) -> None:
        self._current.extend("</span>" for _ in self._open)
        self._open.clear()
        tail = "".join(self._current)
        # Only reopened tags after a final newline: no content, no extra line.
        if tail and not _is_only_tags(tail):
            self._lines.append(tail)
        self._current = []


def _is_only_tags(fragment: str) -> bool:
    stripped = fragment
    while stripped.startswith("<"):
        close = stripped.find(">")
        if close < 0:
            return False
        stripped = stripped[close + 1 :]
    return stripped == ""


def render_table(lines: Iterable[str]) -> str:
    """Wrap rendered lines into a line-numbered HTML table."""

    out = ["<table>\n"]
    for i, line in enumerate(lines, start=1):
        out.append(f"<tr><td class=line-number>{i}</td><td class=line>{line}</td></tr>\n")
    out.append("</table>\n")
    return "".join(out)

"""Turn source bytes into a stream of highlight events.

The stream is a flat sequence of `HighlightStart`, `Source` and `HighlightEnd`
events. Starts and ends nest properly and `Source` events cover every byte of
the input exactly once, in order.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from tree_sitter import Language, Query

logger = logging.getLogger("highlight_ez.highlighter")

# Guards against grammars that inject themselves.
MAX_INJECTION_DEPTH = 8


@dataclass(frozen=True, slots=True)
class HighlightStart:
    highlight: int


@dataclass(frozen=True, slots=True)
class Source:
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class HighlightEnd:
    pass


HighlightEvent = HighlightStart | Source | HighlightEnd


class HighlightConfiguration:
    """A grammar plus its highlight/injection queries, mapped onto a set of highlight names."""

    def __init__(
        self,
        language: Language | None,
        name: str,
        highlights_query: str,
        injections_query: str = "",
    ) -> None:
        self.language = language
        self.name = name
        self.highlights_query = highlights_query
        self.injections_query = injections_query
        self._names: list[str] = []
        self._index_memo: dict[str, int | None] = {}
        self._queries: tuple[Query, Query | None] | None = None

    @property
    def highlight_names(self) -> list[str]:
        return list(self._names)

    def configure(self, recognized_names: Sequence[str]) -> None:
        self._names = list(recognized_names)
        self._index_memo.clear()

    def highlight_index(self, capture_name: str) -> int | None:
        """Index of the recognized name that best matches a query capture.

        A recognized name matches when all of its dot-separated parts appear in
        the capture name; the match with the most parts wins, earliest first on
        ties. Captures starting with an underscore are never highlighted.
        """

        if capture_name in self._index_memo:
            return self._index_memo[capture_name]

        best: int | None = None
        best_len = 0
        if not capture_name.startswith("_"):
            capture_parts = capture_name.split(".")
            for i, recognized in enumerate(self._names):
                parts = recognized.split(".")
                if all(p in capture_parts for p in parts) and len(parts) > best_len:
                    best = i
                    best_len = len(parts)

        self._index_memo[capture_name] = best
        return best

    def queries(self) -> tuple[Query, Query | None]:
        if self._queries is None:
            from tree_sitter import Query

            if self.language is None:
                raise ValueError(f"No grammar loaded for {self.name!r}")
            highlights = Query(self.language, self.highlights_query)
            injections = (
                Query(self.language, self.injections_query)
                if self.injections_query.strip()
                else None
            )
            self._queries = (highlights, injections)
        return self._queries


InjectionCallback = Callable[[str], "HighlightConfiguration | None"]


class Highlighter(ABC):
    @abstractmethod
    def highlight(
        self,
        config: HighlightConfiguration,
        source: bytes,
        injection_callback: InjectionCallback | None = None,
    ) -> Iterator[HighlightEvent]:
        """Return the highlight events covering all of `source`."""


@dataclass(frozen=True, slots=True)
class Span:
    start: int
    end: int
    highlight: int
    depth: int = 0
    pattern: int = 0


def events_from_spans(spans: Iterable[Span], length: int) -> Iterator[HighlightEvent]:
    """Flatten possibly overlapping spans into a properly nested event stream.

    For spans covering the same range at the same depth only the one from the
    earliest query pattern is kept. A span that crosses the end of its parent is
    clipped to the parent.
    """

    ordered = sorted(spans, key=lambda s: (s.start, -s.end, s.depth, s.pattern))
    pos = 0
    stack: list[int] = []
    last_key: tuple[int, int, int] | None = None

    for span in ordered:
        key = (span.start, span.end, span.depth)
        if key == last_key:
            continue
        last_key = key

        while stack and stack[-1] <= span.start:
            end = stack.pop()
            if pos < end:
                yield Source(pos, end)
                pos = end
            yield HighlightEnd()

        end = min(span.end, stack[-1]) if stack else span.end
        if end <= span.start:
            continue
        if pos < span.start:
            yield Source(pos, span.start)
            pos = span.start
        yield HighlightStart(span.highlight)
        stack.append(end)

    while stack:
        end = stack.pop()
        if pos < end:
            yield Source(pos, end)
            pos = end
        yield HighlightEnd()

    if pos < length:
        yield Source(pos, length)


def _node_text(source: bytes, node: Any) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


class TreeSitterHighlighter(Highlighter):
    """Highlighter driven by tree-sitter `highlights.scm`/`injections.scm` queries."""

    def highlight(
        self,
        config: HighlightConfiguration,
        source: bytes,
        injection_callback: InjectionCallback | None = None,
    ) -> Iterator[HighlightEvent]:
        spans = self._collect(config, source, 0, 0, injection_callback)
        return events_from_spans(spans, len(source))

    def _collect(
        self,
        config: HighlightConfiguration,
        source: bytes,
        offset: int,
        depth: int,
        injection_callback: InjectionCallback | None,
    ) -> list[Span]:
        from tree_sitter import Parser, QueryCursor

        highlights, injections = config.queries()
        tree = Parser(config.language).parse(source)
        root = tree.root_node

        spans: list[Span] = []
        for pattern, captures in QueryCursor(highlights).matches(root):
            for capture_name, nodes in captures.items():
                idx = config.highlight_index(capture_name)
                if idx is None:
                    continue
                for node in nodes:
                    spans.append(
                        Span(
                            start=node.start_byte + offset,
                            end=node.end_byte + offset,
                            highlight=idx,
                            depth=depth,
                            pattern=pattern,
                        )
                    )

        if injections is None or injection_callback is None or depth >= MAX_INJECTION_DEPTH:
            return spans

        injected: list[tuple[int, int]] = []
        for pattern, captures in QueryCursor(injections).matches(root):
            lang_name = injections.pattern_settings(pattern).get("injection.language")
            lang_nodes = captures.get("injection.language") or captures.get("language")
            if lang_nodes:
                lang_name = _node_text(source, lang_nodes[0])
            content = captures.get("injection.content") or captures.get("content") or []
            if not lang_name or not content:
                continue

            sub_config = injection_callback(lang_name)
            if sub_config is None:
                logger.debug("no grammar for injected language %r", lang_name)
                continue

            for node in content:
                start, end = node.start_byte, node.end_byte
                injected.append((start + offset, end + offset))
                spans.extend(
                    self._collect(
                        sub_config,
                        source[start:end],
                        offset + start,
                        depth + 1,
                        injection_callback,
                    )
                )

        if injected:
            spans = [s for s in spans if not _shadowed(s, injected, depth)]
        return spans


def _shadowed(span: Span, injected: list[tuple[int, int]], depth: int) -> bool:
    # The injected layer owns everything strictly inside its range.
    if span.depth != depth:
        return False
    for start, end in injected:
        if start <= span.start and span.end <= end and (span.start, span.end) != (start, end):
            return True
    return False

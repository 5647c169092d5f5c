"""Where: features/query/usecases/compiler.py
What: Compile a query syntax tree into a per-track predicate.
Why: Evaluate user filters against index records without touching the filesystem.

Predicates take the track and a ``QueryContext`` built from the snapshot the
query runs against, which is what ``!dup`` consults.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import final

from mlsync.features.index.domain.track import Track
from mlsync.features.query.domain.ast import And, MatchAll, Node, Or, Term
from mlsync.features.query.domain.bangs import FormatSelector, ValueKind
from mlsync.shared.track_metadata import NormalizedMetadata

from .parser import parse

Predicate = Callable[[Track, "QueryContext"], bool]

_TEXT_FIELDS: dict[str, Callable[[NormalizedMetadata], tuple[str, ...]]] = {
    "title": lambda m: (m.title,),
    "artist": lambda m: (m.artist,),
    "album": lambda m: (m.album,),
    "album_artist": lambda m: (m.primary_artist,),
    "full_text": lambda m: (m.title, m.artist, m.album, m.album_artist or ""),
}

_NUMERIC_FIELDS: dict[str, Callable[[NormalizedMetadata], int | None]] = {
    "bitrate": lambda m: m.bitrate,
    "cover_width": lambda m: m.cover_width,
    "cover_height": lambda m: m.cover_height,
}

_BOOLEAN_FIELDS: dict[str, Callable[[NormalizedMetadata], bool]] = {
    "has_cover": lambda m: m.has_cover,
    "has_musicbrainz_id": lambda m: m.has_musicbrainz_id,
}


def duplicate_key(metadata: NormalizedMetadata) -> tuple[str, str, str]:
    """Case-folded (title, artist, album) shared by duplicate tracks."""

    return (
        " ".join(metadata.title.casefold().split()),
        " ".join(metadata.artist.casefold().split()),
        " ".join(metadata.album.casefold().split()),
    )


class QueryContext:
    """Facts about the whole snapshot a query is evaluated against.

    Duplicate counts are computed on first use, so queries without ``!dup``
    never pay for them.
    """

    def __init__(self, tracks: Iterable[Track] = ()) -> None:
        self._tracks: Iterable[Track] = tracks
        self._counts: Counter[tuple[str, str, str]] | None = None

    def is_duplicate(self, track: Track) -> bool:
        if self._counts is None:
            self._counts = Counter(duplicate_key(other.metadata) for other in self._tracks)
        return self._counts[duplicate_key(track.metadata)] > 1


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """A parsed expression together with its executable predicate."""

    expression: str
    tree: Node
    predicate: Predicate

    def __call__(self, track: Track, context: QueryContext | None = None) -> bool:
        """Evaluate one track; without a context ``!dup`` never matches."""

        return self.predicate(track, context or QueryContext((track,)))

    def bind(self, tracks: Sequence[Track]) -> Callable[[Track], bool]:
        """Return a single-argument predicate evaluated against ``tracks``."""

        context = QueryContext(tracks)
        predicate = self.predicate
        return lambda track: predicate(track, context)


def _match_all(_track: Track, _context: QueryContext) -> bool:
    return True


def _compile_term(term: Term) -> Predicate:
    spec = term.spec
    value = term.value

    if spec.kind is ValueKind.TEXT:
        needle = str(value)
        fields = _TEXT_FIELDS[spec.field]
        if spec.exact:
            return lambda track, _context: any(text.casefold() == needle for text in fields(track.metadata))
        return lambda track, _context: any(needle in text.casefold() for text in fields(track.metadata))

    if spec.kind is ValueKind.INTEGER:
        limit = int(value)
        getter = _NUMERIC_FIELDS[spec.field]
        if spec.comparator == "lt":

            def less_than(track: Track, _context: QueryContext) -> bool:
                actual = getter(track.metadata)
                return actual is not None and actual < limit

            return less_than

        def greater_than(track: Track, _context: QueryContext) -> bool:
            actual = getter(track.metadata)
            return actual is not None and actual > limit

        return greater_than

    if spec.kind is ValueKind.BOOLEAN:
        expected = bool(value)
        if spec.field == "duplicate":
            return lambda track, context: context.is_duplicate(track) is expected
        flag = _BOOLEAN_FIELDS[spec.field]
        return lambda track, _context: flag(track.metadata) is expected

    assert isinstance(value, FormatSelector)
    selector = value
    return lambda track, _context: track.metadata.format in selector.formats and (
        selector.bit_depth is None or track.metadata.bit_depth == selector.bit_depth
    )


def compile_tree(node: Node) -> Predicate:
    """Turn a syntax tree into a short-circuiting predicate."""

    if isinstance(node, MatchAll):
        return _match_all
    if isinstance(node, Term):
        return _compile_term(node)
    left = compile_tree(node.left)
    right = compile_tree(node.right)
    if isinstance(node, And):
        return lambda track, context: left(track, context) and right(track, context)
    assert isinstance(node, Or)
    return lambda track, context: left(track, context) or right(track, context)


@final
class QueryCompiler:
    """Compile bang expressions into predicates over indexed tracks."""

    @staticmethod
    def compile(expression: str) -> CompiledQuery:
        """Parse and compile ``expression``.

        Raises:
            QuerySyntaxError: If the expression does not follow the grammar.
        """
        tree = parse(expression)
        return CompiledQuery(expression=expression, tree=tree, predicate=compile_tree(tree))


__all__ = ["CompiledQuery", "Predicate", "QueryCompiler", "QueryContext", "compile_tree", "duplicate_key"]

"""Cursor-based pagination shared by every ``*Connection`` field of the schema.

The items handed to :func:`paginate` are already in their canonical order
(chronological transactions, registration-ordered wallets, ...). Pagination
only ever selects a contiguous window of them and never reorders.
"""

import base64
import binascii
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from walletgraph import log

T = TypeVar("T")

CursorFunction = Callable[[T], str]

CURSOR_PREFIX = "cursor"


class PaginationError(ValueError):
    """Base class for errors raised by the connection protocol."""


class InvalidCursorError(PaginationError):
    """Raised when ``after``/``before`` does not point into the current item set.

    The item set may have shrunk since the cursor was issued; clients should
    restart pagination from the first page.
    """


class PaginationArgumentError(PaginationError):
    """Raised for ``first``/``last`` values the protocol does not accept."""


class PaginationErrorMessages:
    """Standard error messages for pagination errors."""

    MALFORMED_CURSOR = "Cursor could not be decoded"
    STALE_CURSOR = "Cursor no longer points into this connection, the data may have changed since it was issued"
    DUPLICATE_CURSOR = "Two items of the connection share the cursor"
    NEGATIVE_COUNT = "Argument '{argument}' must be a non-negative integer"
    PAGE_TOO_LARGE = "Argument '{argument}' must not exceed {max_page_size}"


@dataclass(frozen=True)
class PageInfo:
    has_next_page: bool
    has_previous_page: bool
    start_cursor: str | None = None
    end_cursor: str | None = None


@dataclass(frozen=True)
class Edge(Generic[T]):
    cursor: str
    node: T


@dataclass(frozen=True)
class Connection(Generic[T]):
    edges: list[Edge[T]] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=lambda: PageInfo(has_next_page=False, has_previous_page=False))

    @property
    def nodes(self) -> list[T]:
        return [edge.node for edge in self.edges]


def encode_cursor(position: str) -> str:
    """Encode a position (any string, usually a natural key) as an opaque cursor."""
    raw = f"{CURSOR_PREFIX}:{position}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> str:
    """Decode a cursor produced by :func:`encode_cursor` back into its position.

    Raises:
        InvalidCursorError: If the cursor was not produced by :func:`encode_cursor`
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise InvalidCursorError(f"{PaginationErrorMessages.MALFORMED_CURSOR}: '{cursor}'") from e

    prefix, separator, position = raw.partition(":")
    if prefix != CURSOR_PREFIX or not separator:
        raise InvalidCursorError(f"{PaginationErrorMessages.MALFORMED_CURSOR}: '{cursor}'")
    return position


def key_cursor(key_function: Callable[[T], str]) -> CursorFunction[T]:
    """Build a ``cursor_of`` function encoding each item's natural key.

    Key cursors survive insertions into the collection and go stale (instead of
    silently shifting) when the referenced item disappears.
    """

    def cursor_of(item: T) -> str:
        return encode_cursor(key_function(item))

    return cursor_of


def _check_count(argument: str, value: int | None, max_page_size: int | None) -> None:
    if value is None:
        return
    if value < 0:
        raise PaginationArgumentError(PaginationErrorMessages.NEGATIVE_COUNT.format(argument=argument))
    if max_page_size is not None and value > max_page_size:
        raise PaginationArgumentError(
            PaginationErrorMessages.PAGE_TOO_LARGE.format(argument=argument, max_page_size=max_page_size)
        )


def _position_of(cursor: str, positions: dict[str, int]) -> int:
    position = decode_cursor(cursor)
    if position not in positions:
        raise InvalidCursorError(f"{PaginationErrorMessages.STALE_CURSOR}: '{cursor}'")
    return positions[position]


def paginate(
    items: Sequence[T],
    cursor_of: CursorFunction[T],
    after: str | None = None,
    before: str | None = None,
    first: int | None = None,
    last: int | None = None,
    max_page_size: int | None = None,
) -> Connection[T]:
    """Select a window of ``items`` and wrap it as a connection.

    ``after``/``before`` restrict the window to the items strictly following /
    preceding the referenced cursor, then ``first`` keeps the leading and
    ``last`` the trailing items of what is left.

    ``has_previous_page``/``has_next_page`` tell whether items exist before /
    after the returned edges. ``start_cursor`` is only set when there is a
    previous page and ``end_cursor`` only when there is a next page.

    Args:
        items: The full collection in canonical order
        cursor_of: Derives the opaque cursor of an item
        after: Only return items after this cursor
        before: Only return items before this cursor
        first: Return at most this many items from the start of the window
        last: Return at most this many items from the end of the window
        max_page_size: Upper bound for ``first`` and ``last``

    Returns:
        The connection for the selected window

    Raises:
        InvalidCursorError: If a cursor is malformed or stale
        PaginationArgumentError: If ``first``/``last`` is negative or too large
    """
    _check_count("first", first, max_page_size)
    _check_count("last", last, max_page_size)

    cursors = [cursor_of(item) for item in items]
    positions: dict[str, int] = {}
    for index, cursor in enumerate(cursors):
        position = decode_cursor(cursor)
        if position in positions:
            raise PaginationError(f"{PaginationErrorMessages.DUPLICATE_CURSOR}: '{cursor}'")
        positions[position] = index

    start, end = 0, len(items)
    if after is not None:
        start = _position_of(after, positions) + 1
    if before is not None:
        end = _position_of(before, positions)
    end = max(start, end)

    if first is not None:
        end = min(end, start + first)
    if last is not None:
        start = max(start, end - last)

    log.debug(f"Paginating {len(items)} items: window [{start}, {end})")

    if start == end:
        return Connection(edges=[], page_info=PageInfo(has_next_page=False, has_previous_page=False))

    edges = [Edge(cursor=cursors[index], node=items[index]) for index in range(start, end)]
    has_previous_page = start > 0
    has_next_page = end < len(items)

    return Connection(
        edges=edges,
        page_info=PageInfo(
            has_next_page=has_next_page,
            has_previous_page=has_previous_page,
            start_cursor=edges[0].cursor if has_previous_page else None,
            end_cursor=edges[-1].cursor if has_next_page else None,
        ),
    )

"""Incremental tokenizer for the vendor catalog document.

The catalog arrives as ``{"hotels": [{...}, {...}, ...]}`` and may be far
larger than we want to hold in memory. Bytes are pushed into an ``ijson``
parser as they arrive; a small state machine watches the parse events and
hands back each hotel object as soon as its closing brace is seen.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any

import ijson

from ..exceptions import CatalogParseError

SCALAR_EVENTS = frozenset({"string", "number", "boolean", "null"})


class StreamState(str, Enum):
    """Where the tokenizer is within the catalog document."""

    AWAITING_KEY = "awaiting_key"
    IN_ARRAY = "in_array"
    IN_RECORD = "in_record"
    DONE = "done"


class CatalogTokenizer:
    """Push-fed pull parser emitting one raw record per catalog array element.

    Only top-level scalar fields of each record are kept; nested objects and
    arrays inside a record are skipped. Non-object array elements are ignored.
    """

    def __init__(self, array_key: str = "hotels") -> None:
        self.array_key = array_key
        self.state = StreamState.AWAITING_KEY
        self._events = ijson.sendable_list()
        self._parser = ijson.basic_parse_coro(self._events, use_float=True)
        self._key_seen = False
        self._record: dict[str, Any] = {}
        self._field: str | None = None
        self._nested = 0
        self._skip = 0
        self._closed = False

    @property
    def done(self) -> bool:
        return self.state is StreamState.DONE

    def feed(self, chunk: bytes) -> Iterator[dict[str, Any]]:
        """Push one chunk and lazily yield every record it completes."""

        if self.done or not chunk:
            return
        try:
            self._parser.send(chunk)
        except ijson.JSONError as exc:
            raise CatalogParseError(f"Catalog stream is not valid JSON: {exc}") from exc
        yield from self._drain()

    def close(self) -> Iterator[dict[str, Any]]:
        """Signal end of input; raises if the document was truncated."""

        if self._closed:
            return
        self._closed = True
        if not self.done:
            try:
                self._parser.close()
            except ijson.JSONError as exc:
                raise CatalogParseError(f"Catalog stream ended mid-document: {exc}") from exc
        yield from self._drain()

    def _drain(self) -> Iterator[dict[str, Any]]:
        events = list(self._events)
        del self._events[:]
        for event, value in events:
            record = self._handle(event, value)
            if record is not None:
                yield record
            if self.done:
                return

    def _handle(self, event: str, value: Any) -> dict[str, Any] | None:
        if self.state is StreamState.AWAITING_KEY:
            if event == "map_key":
                self._key_seen = value == self.array_key
            elif event == "start_array" and self._key_seen:
                self.state = StreamState.IN_ARRAY
            else:
                self._key_seen = False
            return None

        if self.state is StreamState.IN_ARRAY:
            if self._skip:
                if event in ("start_map", "start_array"):
                    self._skip += 1
                elif event in ("end_map", "end_array"):
                    self._skip -= 1
            elif event == "start_map":
                self.state = StreamState.IN_RECORD
                self._record = {}
                self._field = None
                self._nested = 0
            elif event == "start_array":
                self._skip = 1
            elif event == "end_array":
                self.state = StreamState.DONE
            return None

        if self.state is StreamState.IN_RECORD:
            return self._handle_record_event(event, value)

        return None

    def _handle_record_event(self, event: str, value: Any) -> dict[str, Any] | None:
        if self._nested:
            if event in ("start_map", "start_array"):
                self._nested += 1
            elif event in ("end_map", "end_array"):
                self._nested -= 1
            return None

        if event == "map_key":
            self._field = value
        elif event in SCALAR_EVENTS:
            if self._field is not None:
                self._record[self._field] = value
            self._field = None
        elif event in ("start_map", "start_array"):
            self._nested = 1
            self._field = None
        elif event == "end_map":
            record, self._record = self._record, {}
            self.state = StreamState.IN_ARRAY
            return record
        return None

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Line:
    """One line of a document snapshot.

    ``number`` is 1-based. ``start``/``end`` are character offsets; ``end``
    excludes the line break.
    """

    number: int
    start: int
    end: int
    text: str


class Document:
    """An immutable text snapshot with offset <-> line lookups."""

    __slots__ = ("_text", "_starts")

    def __init__(self, text: str) -> None:
        self._text = text
        starts = [0]
        index = text.find("\n")
        while index != -1:
            starts.append(index + 1)
            index = text.find("\n", index + 1)
        self._starts = starts

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def __len__(self) -> int:
        return len(self._text)

    def has_line(self, number: int) -> bool:
        return 1 <= number <= len(self._starts)

    def line(self, number: int) -> Line:
        if not self.has_line(number):
            raise IndexError(f"Line {number} out of range 1..{len(self._starts)}")
        start = self._starts[number - 1]
        end = self._starts[number] - 1 if number < len(self._starts) else len(self._text)
        return Line(number=number, start=start, end=end, text=self._text[start:end])

    def line_at(self, offset: int) -> Line:
        if offset < 0 or offset > len(self._text):
            raise IndexError(f"Offset {offset} out of range 0..{len(self._text)}")
        return self.line(bisect_right(self._starts, offset))

    def lines_between(self, start: int, end: int) -> list[Line]:
        """Lines touched by the span ``[start, end]``."""

        first = self.line_at(start).number
        last = self.line_at(max(start, end)).number
        return [self.line(n) for n in range(first, last + 1)]

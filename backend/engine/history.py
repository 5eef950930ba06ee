from __future__ import annotations

from typing import Iterator

from models import HistoryEntry

SUMMARY_SEPARATOR = " | "


class HistoryLog:
    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def append(self, entry: HistoryEntry) -> None:
        previous = self.last()
        if previous is not None and entry.turn < previous.turn:
            raise ValueError(
                f"History entry for turn {entry.turn} cannot follow turn {previous.turn}."
            )
        self._entries.append(entry)

    def recent_summaries(self, n: int) -> list[str]:
        if n <= 0:
            return []
        return [entry.event_summary for entry in self._entries[-n:]]


def summary_line(summaries: list[str]) -> str:
    return SUMMARY_SEPARATOR.join(summary for summary in summaries if summary)

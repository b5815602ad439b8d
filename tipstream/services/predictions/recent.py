"""
TIPSTREAM - Recent Selections
Bounded per-category memory of recently accepted picks.
"""

from collections import deque
from typing import Deque, Iterable, List, Tuple


class RecentSelections:
    """
    Ring buffer of the last N accepted selections for one category.

    Each selection is a tuple of match descriptions (one for a single,
    three or five for an express). Oldest entries fall off automatically.
    """

    def __init__(self, limit: int = 5):
        self._entries: Deque[Tuple[str, ...]] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def record(self, matches: Iterable[str]) -> None:
        self._entries.append(tuple(matches))

    def excluded_matches(self) -> List[str]:
        """Union of remembered matches, first-seen order."""
        seen: List[str] = []
        for entry in self._entries:
            for match in entry:
                if match not in seen:
                    seen.append(match)
        return seen

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

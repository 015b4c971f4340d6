from __future__ import annotations

from typing import Iterator


class SubscriptionSelector:
    """Set of subscription ids chosen for the next run. Holds ids only, never Subscription objects."""

    def __init__(self) -> None:
        self._selected: set[str] = set()

    def toggle(self, sub_id: str) -> bool:
        """Flip membership of sub_id; returns the new membership."""
        if sub_id in self._selected:
            self._selected.discard(sub_id)
            return False
        self._selected.add(sub_id)
        return True

    def is_selected(self, sub_id: str) -> bool:
        return sub_id in self._selected

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    def clear(self) -> None:
        self._selected.clear()

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self) -> Iterator[str]:
        return iter(self.selected)

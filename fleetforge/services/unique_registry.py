"""
Unique-name registry.

Tracks the names claimed by unique ships, unique squadrons, unique
upgrades and unique-class tags in one editing session. Names are
counted, not just stored: a conflicting import may briefly hold a name
twice, and releasing one holder must not free the name for the other.
"""

from collections import Counter
from collections.abc import Iterable


class UniqueNameRegistry:
    """
    Multiset of unique names currently in use.

    One registry belongs to one editing session. Every add must be paired
    with a remove; a cleared fleet leaves the registry empty.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def add(self, name: str) -> None:
        if name:
            self._counts[name] += 1

    def add_all(self, names: Iterable[str]) -> None:
        for name in names:
            self.add(name)

    def remove(self, name: str) -> None:
        """Release one claim on a name. Releasing an unclaimed name is a no-op."""
        if self._counts[name] <= 1:
            self._counts.pop(name, None)
        else:
            self._counts[name] -= 1

    def remove_all(self, names: Iterable[str]) -> None:
        for name in names:
            self.remove(name)

    def clear(self) -> None:
        self._counts.clear()

    def conflicts(self, names: Iterable[str]) -> list[str]:
        """Return the subset of `names` already in use, in input order."""
        return [name for name in names if name in self]

    def names(self) -> frozenset[str]:
        return frozenset(self._counts)

    def snapshot(self) -> dict[str, int]:
        """Copy of the claim counts, for diagnostics and tests."""
        return dict(self._counts)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._counts[name] > 0

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"UniqueNameRegistry({sorted(self._counts)})"

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Set


@dataclass(frozen=True)
class PendingChangeSet:
    """Weeks staged for addition or removal on one component, not yet committed."""

    added: FrozenSet[int] = frozenset()
    removed: FrozenSet[int] = frozenset()

    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def added_weeks(self) -> List[int]:
        return sorted(self.added)

    def removed_weeks(self) -> List[int]:
        return sorted(self.removed)


EMPTY_CHANGES = PendingChangeSet()


@dataclass
class _MutableChanges:
    added: Set[int] = field(default_factory=set)
    removed: Set[int] = field(default_factory=set)

    def snapshot(self) -> PendingChangeSet:
        return PendingChangeSet(added=frozenset(self.added), removed=frozenset(self.removed))


class PendingChangeTracker:
    """Sparse map of component id to staged week toggles.

    Components without staged work have no entry. A week index is never in
    both ``added`` and ``removed`` for the same component.
    """

    def __init__(self) -> None:
        self._changes: Dict[str, _MutableChanges] = {}

    def toggle(self, component_id: str, week_index: int, currently_assigned: bool) -> PendingChangeSet:
        if week_index < 0:
            raise ValueError(f"week index must not be negative: {week_index}")
        changes = self._changes.setdefault(component_id, _MutableChanges())
        if currently_assigned:
            changes.added.discard(week_index)
            if week_index in changes.removed:
                changes.removed.discard(week_index)
            else:
                changes.removed.add(week_index)
        else:
            changes.removed.discard(week_index)
            if week_index in changes.added:
                changes.added.discard(week_index)
            else:
                changes.added.add(week_index)
        if not changes.added and not changes.removed:
            del self._changes[component_id]
            return EMPTY_CHANGES
        return changes.snapshot()

    def get(self, component_id: str) -> PendingChangeSet:
        changes = self._changes.get(component_id)
        return changes.snapshot() if changes else EMPTY_CHANGES

    def pop(self, component_id: str) -> PendingChangeSet:
        changes = self._changes.pop(component_id, None)
        return changes.snapshot() if changes else EMPTY_CHANGES

    def discard(self, component_id: str) -> bool:
        return self._changes.pop(component_id, None) is not None

    def has_pending(self, component_id: str) -> bool:
        return component_id in self._changes

    def component_ids(self) -> List[str]:
        return list(self._changes)

    def snapshot(self) -> Dict[str, PendingChangeSet]:
        return {component_id: changes.snapshot() for component_id, changes in self._changes.items()}

    def clear(self) -> None:
        self._changes.clear()

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._changes

    def __len__(self) -> int:
        return len(self._changes)

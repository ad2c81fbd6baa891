"""
Client State Reconciliation.

A view list that is mutated optimistically: the change shows immediately,
then the backing write runs. If the write fails the change is rolled back,
for deletions and field updates alike. A snapshot from the store always
replaces whatever the list holds, and a rollback never overwrites a snapshot
that arrived after the optimistic change.

Legacy behaviour for deletions (leave the optimistic removal in place when
the delete fails) is available with ``rollback_on_failure=False``.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from perfhub.core.config import settings

logger = logging.getLogger(__name__)

Commit = Callable[[], Awaitable[Any]]
Item = Dict[str, Any]


@dataclass
class Toast:
    """Transient user-visible message that dismisses itself."""
    kind: str  # "success" | "error" | "info"
    message: str
    dismiss_after: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "toast",
            "kind": self.kind,
            "message": self.message,
            "dismissAfter": self.dismiss_after,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def success(cls, message: str, closing: bool = False) -> "Toast":
        # Success-then-close flows get the short delay
        delay = settings.toast_close_seconds if closing else settings.toast_seconds
        return cls("success", message, delay)

    @classmethod
    def error(cls, message: str) -> "Toast":
        return cls("error", message, settings.toast_seconds)


class OptimisticList:

    def __init__(self, items: Optional[Iterable[Item]] = None, key: str = "id", rollback_on_failure: bool = True):
        self.key = key
        self.rollback_on_failure = rollback_on_failure
        self._items: List[Item] = [dict(i) for i in (items or [])]
        self._version = 0

    @property
    def items(self) -> List[Item]:
        return [dict(i) for i in self._items]

    @property
    def ids(self) -> List[Any]:
        return [i.get(self.key) for i in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: Any) -> Optional[Item]:
        for item in self._items:
            if item.get(self.key) == item_id:
                return dict(item)
        return None

    def apply_snapshot(self, items: Iterable[Item]) -> None:
        """Last snapshot wins over any local state."""
        self._items = [dict(i) for i in items]
        self._version += 1

    async def remove(self, item_id: Any, commit: Commit) -> None:
        removed = self._take(lambda item: item.get(self.key) == item_id)
        await self._commit_or_restore(removed, commit, f"remove {item_id}")

    async def remove_all(self, commit: Commit) -> None:
        removed = self._take(lambda item: True)
        await self._commit_or_restore(removed, commit, "remove all")

    async def patch(self, item_id: Any, changes: Dict[str, Any], commit: Commit) -> None:
        """
        Apply ``changes`` to one item, then commit. On failure each changed
        field goes back to its prior value, unless something else has
        changed it since.
        """
        await self.patch_many([item_id], changes, commit)

    async def patch_many(self, item_ids: Iterable[Any], changes: Dict[str, Any], commit: Commit) -> None:
        """Same as ``patch`` for several items under one commit."""
        wanted = set(item_ids)
        targets = [item for item in self._items if item.get(self.key) in wanted]

        missing = object()
        priors = []
        for target in targets:
            priors.append((target, {name: target.get(name, missing) for name in changes}))
            target.update(changes)
        version = self._version
        try:
            await commit()
        except Exception:
            logger.warning(f"Optimistic patch of {len(targets)} item(s) failed; reverting {sorted(changes)}")
            if self._version == version:
                for target, prior in priors:
                    for name, old in prior.items():
                        if target.get(name) != changes[name]:
                            continue
                        if old is missing:
                            target.pop(name, None)
                        else:
                            target[name] = old
            raise

    def _take(self, predicate) -> List[Tuple[int, Item]]:
        removed = [(i, item) for i, item in enumerate(self._items) if predicate(item)]
        if removed:
            taken = {id(item) for _, item in removed}
            self._items = [item for item in self._items if id(item) not in taken]
        return removed

    async def _commit_or_restore(self, removed: List[Tuple[int, Item]], commit: Commit, label: str) -> None:
        version = self._version
        try:
            await commit()
        except Exception:
            if not self.rollback_on_failure:
                logger.warning(f"Optimistic {label} failed; leaving local state as is")
            elif self._version != version:
                logger.info(f"Optimistic {label} failed; a newer snapshot already replaced local state")
            else:
                logger.warning(f"Optimistic {label} failed; restoring {len(removed)} item(s)")
                present = set(self.ids)
                for index, item in removed:
                    if item.get(self.key) not in present:
                        self._items.insert(min(index, len(self._items)), item)
            raise

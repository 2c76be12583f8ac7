"""
Override store contract.

Deliverable overrides (due-date moves, status, confidence, review
acknowledgements, change orders) live outside the entity snapshot. The engine
only needs a keyed get/set contract over them; hosts plug in whatever
persistence they use.
"""

import logging
from typing import Dict, Iterator, Optional, Protocol, Tuple, runtime_checkable

from signal_engine.models.schemas import DeliverableOverride, EntityId

logger = logging.getLogger(__name__)


@runtime_checkable
class OverrideStore(Protocol):
    """Keyed read/write access to deliverable override records."""

    def get(self, deliverable_id: EntityId) -> Optional[DeliverableOverride]:
        ...

    def set(self, deliverable_id: EntityId, override: Optional[DeliverableOverride]) -> None:
        """Store an override; None or an empty override removes the entry."""
        ...


class InMemoryOverrideStore:
    """
    Dict-backed OverrideStore.

    Writes are last-write-wins; there is no concurrent writer in the
    dashboard's usage pattern.
    """

    def __init__(self, initial: Optional[Dict[EntityId, DeliverableOverride]] = None):
        self._records: Dict[EntityId, DeliverableOverride] = {}
        for deliverable_id, override in (initial or {}).items():
            self.set(deliverable_id, override)

    def get(self, deliverable_id: EntityId) -> Optional[DeliverableOverride]:
        return self._records.get(deliverable_id)

    def set(self, deliverable_id: EntityId, override: Optional[DeliverableOverride]) -> None:
        if override is None or override.is_empty():
            if self._records.pop(deliverable_id, None) is not None:
                logger.debug(f"Removed override for deliverable {deliverable_id}")
            return
        self._records[deliverable_id] = override

    def items(self) -> Iterator[Tuple[EntityId, DeliverableOverride]]:
        return iter(list(self._records.items()))

    def __contains__(self, deliverable_id: object) -> bool:
        return deliverable_id in self._records

    def __len__(self) -> int:
        return len(self._records)


__all__ = [
    'OverrideStore',
    'InMemoryOverrideStore',
]

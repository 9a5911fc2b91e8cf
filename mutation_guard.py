import logging
from typing import Any, Awaitable, Callable, FrozenSet, Hashable, Set

logger = logging.getLogger(__name__)


class _AlreadyInProgress:
    def __repr__(self):
        return "ALREADY_IN_PROGRESS"


ALREADY_IN_PROGRESS = _AlreadyInProgress()


class MutationGuard:
    """Allows one in-flight write per entity id; different ids run concurrently.

    One guard per screen instance. Admission and release never await, so on a
    single event loop the check-and-admit pair cannot interleave.
    """

    def __init__(self):
        self._active: Set[Hashable] = set()

    @property
    def active(self) -> FrozenSet[Hashable]:
        return frozenset(self._active)

    def is_busy(self, entity_id: Hashable) -> bool:
        return entity_id in self._active

    def admit(self, entity_id: Hashable) -> bool:
        if entity_id in self._active:
            logger.debug("Write already in flight for %r", entity_id)
            return False
        self._active.add(entity_id)
        logger.debug("Admitted write for %r", entity_id)
        return True

    def release(self, entity_id: Hashable) -> None:
        self._active.discard(entity_id)
        logger.debug("Released %r", entity_id)

    async def run(self, entity_id: Hashable, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Await ``fn()`` under the guard for ``entity_id``.

        Returns ``ALREADY_IN_PROGRESS`` without calling ``fn`` when a write for
        the same id has not finished yet. The id is released on every exit path.
        """
        if not self.admit(entity_id):
            return ALREADY_IN_PROGRESS
        try:
            return await fn()
        finally:
            self.release(entity_id)

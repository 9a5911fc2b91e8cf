import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Hashable, Mapping, Optional

from pydantic import ValidationError

from access_gate import Access, check_access
from api_client import ApiClient, ApiError, TransportFailure
from error_normalizer import NormalizedError, normalize_exception, normalize_malformed_response
from form_validation import ValidationErrorMap, prepare, validate
from mutation_guard import ALREADY_IN_PROGRESS, MutationGuard
from schemas import Session

logger = logging.getLogger(__name__)


class ScreenState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    FORBIDDEN = "forbidden"


class MutationOutcome(str, Enum):
    SUBMITTED = "submitted"
    INVALID = "invalid"
    BUSY = "busy"
    FAILED = "failed"
    FORBIDDEN = "forbidden"
    DISCARDED = "discarded"


class ViewSynchronizer:
    """Fetch, mutate, refetch lifecycle of one role screen.

    Subclasses set ``required_role`` and implement ``load()``, which returns
    the screen's full authoritative data. Writes go through ``mutate()``:
    local validation, then the per-entity guard, then the write, then a full
    reload once the guard is released. Local data is never patched in place.

    Presentation reads ``state``, ``data``, ``field_errors``, ``in_flight``,
    ``error_summary`` and ``last_error``.
    """

    required_role: str = ""
    load_fallback = "Failed to load data. Please try again later."

    def __init__(self, api: ApiClient, session: Optional[Session]):
        self.api = api
        self.session = session
        self.state = ScreenState.IDLE
        self.data: Any = None
        self.field_errors: ValidationErrorMap = {}
        self.active_form: Optional[str] = None
        self.last_error: Optional[NormalizedError] = None
        self.guard = MutationGuard()
        self.torn_down = False
        self._load_seq = 0

    @property
    def error_summary(self) -> Optional[str]:
        return self.last_error.summary if self.last_error else None

    @property
    def in_flight(self) -> FrozenSet[Hashable]:
        return self.guard.active

    @property
    def is_loading(self) -> bool:
        return self.state is ScreenState.LOADING

    async def load(self) -> Any:
        raise NotImplementedError

    async def mount(self) -> ScreenState:
        return await self.refresh()

    def unmount(self) -> None:
        """Tear the screen down; requests still outstanding are discarded on completion."""
        self.torn_down = True

    def _superseded(self, seq: int) -> bool:
        return self.torn_down or seq != self._load_seq

    async def refresh(self) -> ScreenState:
        if self.torn_down:
            return self.state
        if check_access(self.session, self.required_role) is Access.FORBIDDEN:
            logger.info("%s: access denied for %s", type(self).__name__, self.session.role if self.session else "anonymous")
            self.state = ScreenState.FORBIDDEN
            self.data = None
            return self.state

        self._load_seq += 1
        seq = self._load_seq
        self.state = ScreenState.LOADING
        try:
            data = await self.load()
        except (ApiError, TransportFailure) as exc:
            if self._superseded(seq):
                return self.state
            self._fail_load(normalize_exception(exc, self.load_fallback))
            return self.state
        except ValidationError as exc:
            if self._superseded(seq):
                return self.state
            self._fail_load(normalize_malformed_response(self.load_fallback, str(exc)))
            return self.state

        if self._superseded(seq):
            logger.debug("%s: discarding superseded load", type(self).__name__)
            return self.state
        self.data = data
        self.last_error = None
        self.state = ScreenState.READY
        return self.state

    def _fail_load(self, error: NormalizedError) -> None:
        logger.warning("%s: load failed (%s): %s", type(self).__name__, error.kind.value, error.summary)
        self.data = None
        self.last_error = error
        self.state = ScreenState.FAILED

    async def mutate(
        self,
        entity_id: Hashable,
        form_kind: str,
        fields: Mapping[str, Any],
        write: Callable[[Dict[str, Any]], Awaitable[Any]],
        fallback: str,
    ) -> MutationOutcome:
        """Validate, then write under the guard for ``entity_id``, then reload.

        ``fields`` is never modified, so a failed submission keeps what the
        user typed.
        """
        if self.state is ScreenState.FORBIDDEN:
            return MutationOutcome.FORBIDDEN

        errors = validate(form_kind, fields)
        if errors:
            self.active_form = form_kind
            self.field_errors = errors
            self.last_error = None
            return MutationOutcome.INVALID

        payload = prepare(form_kind, fields)

        async def attempt():
            self.active_form = form_kind
            self.field_errors = {}
            self.last_error = None
            return await write(payload)

        try:
            result = await self.guard.run(entity_id, attempt)
        except (ApiError, TransportFailure) as exc:
            if self.torn_down:
                return MutationOutcome.DISCARDED
            self.last_error = normalize_exception(exc, fallback)
            self.field_errors = dict(self.last_error.error_map)
            logger.warning(
                "%s: %s failed for %r (%s): %s",
                type(self).__name__, form_kind, entity_id, self.last_error.kind.value, self.last_error.summary,
            )
            return MutationOutcome.FAILED

        if result is ALREADY_IN_PROGRESS:
            return MutationOutcome.BUSY
        if self.torn_down:
            return MutationOutcome.DISCARDED

        self.field_errors = {}
        self.active_form = None
        self.after_write(form_kind, result)
        await self.refresh()
        return MutationOutcome.SUBMITTED

    def after_write(self, form_kind: str, result: Any) -> None:
        """Hook run after a successful write, before the reload."""

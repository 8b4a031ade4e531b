"""Save-and-resume of in-progress responses.

Lifecycle of one form's draft::

    Empty -> Dirty -> Saved -> Resumed | Discarded | Cleared

`mark_dirty` holds the latest answers snapshot and (re)arms the debounce
scheduler; the save itself happens in `flush`. Storage failures never reach
the respondent: they are logged at WARNING and the form keeps working.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from formrunner.logic.answer_canonical import is_empty_answer
from formrunner.logic.repository_partial_submissions import KeyValueStore, partial_key
from formrunner.logic.scheduler import DebounceScheduler

logger = logging.getLogger(__name__)


DEFAULT_DEBOUNCE_SECONDS = 2.0
DEFAULT_TTL_DAYS = 30


class PartialState:
    EMPTY = "empty"
    DIRTY = "dirty"
    SAVED = "saved"
    RESUMED = "resumed"
    DISCARDED = "discarded"
    CLEARED = "cleared"


class PartialSubmissionRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    form_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    current_index: int = 0
    saved_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def has_answers(self) -> bool:
        return any(not is_empty_answer(v) for v in self.answers.values())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _has_answers(answers: Dict[str, Any]) -> bool:
    return any(not is_empty_answer(v) for v in answers.values())


class PartialSubmissionManager:
    def __init__(
        self,
        form_id: str,
        store: KeyValueStore,
        scheduler: DebounceScheduler,
        *,
        enabled: bool = True,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        ttl_days: int = DEFAULT_TTL_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.form_id = form_id
        self.enabled = enabled
        self._store = store
        self._scheduler = scheduler
        self._debounce_seconds = debounce_seconds
        self._ttl = timedelta(days=ttl_days)
        self._clock = clock
        self._pending: Optional[tuple[Dict[str, Any], int]] = None
        self.state = PartialState.EMPTY
        self.last_saved_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return partial_key(self.form_id)

    @property
    def save_pending(self) -> bool:
        return self._scheduler.pending

    def _delete(self, event: str) -> None:
        try:
            self._store.delete(self.key)
        except Exception:
            logger.warning("%s form_id=%s storage delete failed", event, self.form_id, exc_info=True)

    def load(self) -> Optional[PartialSubmissionRecord]:
        """Return the saved draft when it exists, is unexpired and holds answers."""
        if not self.enabled:
            return None
        try:
            raw = self._store.get(self.key)
        except Exception:
            logger.warning("partial_load_failed form_id=%s", self.form_id, exc_info=True)
            return None
        if not raw:
            return None
        try:
            record = PartialSubmissionRecord.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("partial_record_corrupt form_id=%s", self.form_id)
            self._delete("partial_record_corrupt")
            return None
        if record.is_expired(self._clock()):
            logger.info("partial_record_expired form_id=%s saved_at=%s", self.form_id, record.saved_at.isoformat())
            self._delete("partial_record_expired")
            return None
        if not record.has_answers():
            return None
        return record

    def mark_dirty(self, answers: Dict[str, Any], current_index: int) -> bool:
        """Hold the latest snapshot and restart the autosave delay.

        Nothing is scheduled until at least one answer exists, so moving
        between questions of an untouched form never creates a draft.
        Erasing every answer drops the held snapshot and any stored draft.
        """
        if not self.enabled or self.state == PartialState.CLEARED:
            return False
        if not _has_answers(answers):
            if self._pending is not None or self.state != PartialState.EMPTY:
                self.cancel_pending()
                self._delete("partial_emptied")
                self.state = PartialState.EMPTY
            return False
        self._pending = (copy.deepcopy(answers), int(current_index))
        self.state = PartialState.DIRTY
        self._scheduler.arm(self._debounce_seconds, self.flush)
        return True

    def flush(self) -> bool:
        """Write the held snapshot now; returns True when a record was written."""
        pending, self._pending = self._pending, None
        self._scheduler.cancel()
        if pending is None:
            return False
        answers, current_index = pending
        now = self._clock()
        record = PartialSubmissionRecord(
            form_id=self.form_id,
            answers=answers,
            current_index=current_index,
            saved_at=now,
            expires_at=now + self._ttl,
        )
        try:
            self._store.set(self.key, record.model_dump_json(by_alias=True))
        except Exception:
            logger.warning("partial_save_failed form_id=%s", self.form_id, exc_info=True)
            return False
        self.state = PartialState.SAVED
        self.last_saved_at = now
        logger.debug("partial_saved form_id=%s current_index=%s answers=%s", self.form_id, current_index, len(answers))
        return True

    def resume(self, record: PartialSubmissionRecord) -> PartialSubmissionRecord:
        self.state = PartialState.RESUMED
        self.last_saved_at = record.saved_at
        logger.info("partial_resumed form_id=%s current_index=%s", self.form_id, record.current_index)
        return record

    def discard(self) -> None:
        self.cancel_pending()
        self._delete("partial_discard")
        self.state = PartialState.DISCARDED
        logger.info("partial_discarded form_id=%s", self.form_id)

    def clear(self) -> None:
        self.cancel_pending()
        self._delete("partial_clear")
        self.state = PartialState.CLEARED

    def cancel_pending(self) -> None:
        self._scheduler.cancel()
        self._pending = None


def describe_age(saved_at: datetime, now: Optional[datetime] = None) -> str:
    """Human wording for how long ago a draft was saved."""
    seconds = ((now or _utcnow()) - saved_at).total_seconds()
    minutes, hours, days = int(seconds // 60), int(seconds // 3600), int(seconds // 86400)
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "DEFAULT_TTL_DAYS",
    "PartialState",
    "PartialSubmissionRecord",
    "PartialSubmissionManager",
    "describe_age",
]

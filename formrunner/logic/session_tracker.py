"""Per-response timing and device context.

One `SessionContext` belongs to one running form; nothing is kept at module
level. Time spent on a question accumulates across visits and is reported in
whole seconds.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceInfo(_WireModel):
    device: str = "desktop"
    browser: str = "unknown"
    os: str = "unknown"


class GeoData(_WireModel):
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SessionAnalytics(_WireModel):
    started_at: datetime
    completed_at: datetime
    question_times: Dict[str, int] = Field(default_factory=dict)
    completed_questions: List[str] = Field(default_factory=list)
    is_complete: bool = True


class DropOffData(_WireModel):
    form_id: str
    started_at: datetime
    question_times: Dict[str, int] = Field(default_factory=dict)
    drop_off_question_id: Optional[str] = None
    elapsed_seconds: int = 0
    is_complete: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionContext:
    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self.form_id: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.current_question_id: Optional[str] = None
        self._question_started_at: Optional[datetime] = None
        self._question_seconds: Dict[str, float] = {}
        self.completed_questions: List[str] = []

    @property
    def active(self) -> bool:
        return self.started_at is not None

    def start(self, form_id: str) -> None:
        now = self._clock()
        self.form_id = form_id
        self.started_at = now
        self.current_question_id = None
        self._question_started_at = now
        self._question_seconds = {}
        self.completed_questions = []
        logger.debug("session_started form_id=%s", form_id)

    def _close_current(self, now: datetime) -> None:
        if self.current_question_id is None or self._question_started_at is None:
            return
        spent = max(0.0, (now - self._question_started_at).total_seconds())
        qid = self.current_question_id
        self._question_seconds[qid] = self._question_seconds.get(qid, 0.0) + spent
        self._question_started_at = now

    def track_question_view(self, question_id: str) -> None:
        if not self.active:
            return
        now = self._clock()
        self._close_current(now)
        self.current_question_id = question_id
        self._question_started_at = now

    def track_question_complete(self, question_id: str) -> None:
        if not self.active:
            return
        if question_id not in self.completed_questions:
            self.completed_questions.append(question_id)

    def _question_times(self) -> Dict[str, int]:
        return {qid: int(round(s)) for qid, s in self._question_seconds.items()}

    def session_analytics(self) -> Optional[SessionAnalytics]:
        if self.started_at is None:
            return None
        now = self._clock()
        self._close_current(now)
        return SessionAnalytics(
            started_at=self.started_at,
            completed_at=now,
            question_times=self._question_times(),
            completed_questions=list(self.completed_questions),
            is_complete=True,
        )

    def drop_off_data(self) -> Optional[DropOffData]:
        if self.started_at is None:
            return None
        now = self._clock()
        self._close_current(now)
        return DropOffData(
            form_id=self.form_id or "",
            started_at=self.started_at,
            question_times=self._question_times(),
            drop_off_question_id=self.current_question_id,
            elapsed_seconds=int((now - self.started_at).total_seconds()),
        )

    def clear(self) -> None:
        self.form_id = None
        self.started_at = None
        self.current_question_id = None
        self._question_started_at = None
        self._question_seconds = {}
        self.completed_questions = []


_TABLET_RE = re.compile(r"tablet|ipad|playbook|silk", re.IGNORECASE)
_MOBILE_RE = re.compile(r"mobile|iphone|ipod|android|blackberry|opera mini|iemobile", re.IGNORECASE)

# Order matters: Chrome UAs also mention Safari, Edge and Opera UAs mention Chrome
_BROWSERS = (
    ("Firefox", "Firefox"),
    ("SamsungBrowser", "Samsung Browser"),
    ("OPR", "Opera"),
    ("Opera", "Opera"),
    ("Edg", "Edge"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
)
_SYSTEMS = (
    ("Windows", "Windows"),
    ("Android", "Android"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("iOS", "iOS"),
    ("Mac", "macOS"),
    ("Linux", "Linux"),
)


def classify_device(user_agent: Optional[str]) -> DeviceInfo:
    ua = user_agent or ""
    if not ua:
        return DeviceInfo()
    if _TABLET_RE.search(ua):
        device = "tablet"
    elif _MOBILE_RE.search(ua):
        device = "mobile"
    else:
        device = "desktop"
    browser = next((name for token, name in _BROWSERS if token in ua), "unknown")
    os_name = next((name for token, name in _SYSTEMS if token in ua), "unknown")
    return DeviceInfo(device=device, browser=browser, os=os_name)


def format_time(seconds: int) -> str:
    """Compact duration text: 45s, 2m 5s, 1h 3m."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        mins, secs = divmod(seconds, 60)
        return f"{mins}m {secs}s" if secs else f"{mins}m"
    hours, rest = divmod(seconds, 3600)
    mins = rest // 60
    return f"{hours}h {mins}m" if mins else f"{hours}h"


__all__ = [
    "DeviceInfo",
    "GeoData",
    "SessionAnalytics",
    "DropOffData",
    "SessionContext",
    "classify_device",
    "format_time",
]

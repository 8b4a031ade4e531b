"""Outbound boundaries: final submission and the drop-off beacon.

The submission endpoint receives ``{formId, answers, metadata}`` as JSON. Any
2xx status is success; every other status and any transport error is a
failure reported back to the runtime, which keeps the answers for a retry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formrunner.config import AppConfig
from formrunner.logic.session_tracker import DeviceInfo, DropOffData, GeoData, SessionAnalytics

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_SECONDS = 10.0
BEACON_TIMEOUT_SECONDS = 2.0


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubmissionMetadata(_WireModel):
    user_agent: str = ""
    analytics: Optional[SessionAnalytics] = None
    device: DeviceInfo = Field(default_factory=DeviceInfo)
    geo: GeoData = Field(default_factory=GeoData)


class SubmissionPayload(_WireModel):
    form_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)
    metadata: SubmissionMetadata = Field(default_factory=SubmissionMetadata)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SubmissionOutcome(BaseModel):
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    body: Optional[Any] = None


class SubmissionBoundary(Protocol):
    def submit(self, payload: SubmissionPayload) -> SubmissionOutcome: ...


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "detail", "title", "message"):
            if body.get(key):
                return str(body[key])
    return f"Submission failed with status {response.status_code}"


class HttpSubmissionClient:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: AppConfig, *, transport: httpx.BaseTransport | None = None
    ) -> "HttpSubmissionClient":
        endpoints = config.endpoints
        if not endpoints.submit_url:
            raise ValueError("endpoints.submit_url is not configured")
        return cls(endpoints.submit_url, timeout=endpoints.timeout_seconds, transport=transport)

    def submit(self, payload: SubmissionPayload) -> SubmissionOutcome:
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self.url, json=payload.to_wire())
        except httpx.HTTPError as e:
            logger.warning("submission_transport_error form_id=%s url=%s error=%s", payload.form_id, self.url, e)
            return SubmissionOutcome(ok=False, error=f"Could not reach the server: {e}")
        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            logger.info("submission_accepted form_id=%s status=%s", payload.form_id, response.status_code)
            return SubmissionOutcome(ok=True, status_code=response.status_code, body=body)
        message = _error_message(response)
        logger.warning(
            "submission_rejected form_id=%s status=%s error=%s", payload.form_id, response.status_code, message
        )
        return SubmissionOutcome(ok=False, status_code=response.status_code, error=message)


def send_drop_off_beacon(
    url: Optional[str],
    data: DropOffData,
    *,
    timeout: float = BEACON_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Best-effort notification that a respondent left mid-form; never raises."""
    if not url:
        return False
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.post(url, json=data.model_dump(mode="json", by_alias=True))
    except httpx.HTTPError as e:
        logger.warning("drop_off_beacon_failed form_id=%s error=%s", data.form_id, e)
        return False
    if not response.is_success:
        logger.warning("drop_off_beacon_rejected form_id=%s status=%s", data.form_id, response.status_code)
        return False
    return True


__all__ = [
    "SubmissionMetadata",
    "SubmissionPayload",
    "SubmissionOutcome",
    "SubmissionBoundary",
    "HttpSubmissionClient",
    "send_drop_off_beacon",
]

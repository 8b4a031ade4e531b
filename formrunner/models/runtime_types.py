"""Request and response bodies for the runtime API."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formrunner.logic.navigation import Progress


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswersRequest(_ApiModel):
    answers: Dict[str, Any] = Field(default_factory=dict)


class NavigationRequest(_ApiModel):
    current_index: int = Field(ge=-1)
    answers: Dict[str, Any] = Field(default_factory=dict)
    direction: Literal["next", "previous"] = "next"


class NavigationResult(BaseModel):
    index: int
    is_submit: bool
    question_id: Optional[str] = None
    progress: Optional[Progress] = None


class VisibleQuestions(BaseModel):
    question_ids: List[str]


class AnswerRequest(_ApiModel):
    answer: Any = None


class PrefillRequest(_ApiModel):
    params: Dict[str, str] = Field(default_factory=dict)


class PrefillResult(BaseModel):
    answers: Dict[str, Any]


__all__ = [
    "AnswersRequest",
    "NavigationRequest",
    "NavigationResult",
    "VisibleQuestions",
    "AnswerRequest",
    "PrefillRequest",
    "PrefillResult",
]

"""Form definition models consumed by the runtime.

A form is an ordered list of questions plus display/runtime settings. Models
accept both camelCase (as authored by the form builder) and snake_case input.
Structural invariants are checked on construction; dangling references in
logic, piping or formulas are tolerated and degrade at evaluation time.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


class FormDefinitionError(ValueError):
    pass


class QuestionType:
    """Closed set of question type tokens."""

    WELCOME = "welcome"
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    NUMBER = "number"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    RATING = "rating"
    SCALE = "scale"
    DATE = "date"
    YES_NO = "yes_no"
    NPS = "nps"
    SLIDER = "slider"
    MATRIX = "matrix"
    RANKING = "ranking"
    FILE_UPLOAD = "file_upload"
    SIGNATURE = "signature"
    ADDRESS = "address"
    PAYMENT = "payment"
    CALCULATOR = "calculator"
    THANK_YOU = "thank_you"

    ALL = frozenset({
        WELCOME, SHORT_TEXT, LONG_TEXT, EMAIL, PHONE, URL, NUMBER,
        MULTIPLE_CHOICE, CHECKBOX, DROPDOWN, RATING, SCALE, DATE, YES_NO,
        NPS, SLIDER, MATRIX, RANKING, FILE_UPLOAD, SIGNATURE, ADDRESS,
        PAYMENT, CALCULATOR, THANK_YOU,
    })
    # Bookends: never branched, never answered
    STRUCTURAL = frozenset({WELCOME, THANK_YOU})
    NUMERIC = frozenset({NUMBER, RATING, SCALE, NPS, SLIDER, CALCULATOR})
    CHOICE = frozenset({MULTIPLE_CHOICE, DROPDOWN})


class LogicOperator:
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    ALL = frozenset({
        EQUALS, NOT_EQUALS, CONTAINS, NOT_CONTAINS,
        GREATER_THAN, LESS_THAN, IS_EMPTY, IS_NOT_EMPTY,
    })


class RuleAction:
    SHOW = "show"
    HIDE = "hide"
    JUMP = "jump"

    ALL = frozenset({SHOW, HIDE, JUMP})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionOption(_CamelModel):
    id: Optional[str] = None
    label: str
    value: str

    @model_validator(mode="before")
    @classmethod
    def _label_defaults_to_value(cls, data: Any) -> Any:
        if isinstance(data, dict) and "label" not in data and "value" in data:
            data = dict(data, label=str(data["value"]))
        return data


class MatrixAxisItem(_CamelModel):
    id: str
    label: str


class QuestionProperties(_CamelModel):
    """Type-specific configuration bag; unknown keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    placeholder: Optional[str] = None
    options: List[QuestionOption] = Field(default_factory=list)
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    step: Optional[Union[int, float]] = None
    max_length: Optional[int] = None
    rows: List[MatrixAxisItem] = Field(default_factory=list)
    columns: List[MatrixAxisItem] = Field(default_factory=list)
    accepted_file_types: List[str] = Field(default_factory=list)
    max_file_size: Optional[Union[int, float]] = None
    max_files: Optional[int] = None
    amount: Optional[Union[int, float]] = None
    currency: Optional[str] = None
    address_fields: List[str] = Field(default_factory=list)
    formula: Optional[str] = None
    decimal_places: Optional[int] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None

    def option_values(self) -> List[str]:
        return [o.value for o in self.options]

    def option_label(self, value: Any) -> str:
        for o in self.options:
            if o.value == value:
                return o.label
        return str(value)


class LogicCondition(_CamelModel):
    id: Optional[str] = None
    question_id: str
    operator: str
    value: Optional[Any] = None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalise_operator(cls, v: Any) -> str:
        op = str(v or "").strip().lower().replace("-", "_")
        if op not in LogicOperator.ALL:
            raise ValueError(f"operator must be one of {sorted(LogicOperator.ALL)}")
        return op


class LogicRule(_CamelModel):
    id: Optional[str] = None
    conditions: List[LogicCondition] = Field(default_factory=list)
    condition_logic: str = "and"
    action: str = RuleAction.SHOW
    jump_to_question_id: Optional[str] = None

    @field_validator("condition_logic", mode="before")
    @classmethod
    def _normalise_condition_logic(cls, v: Any) -> str:
        s = str(v or "and").strip().lower()
        if s not in {"and", "or"}:
            raise ValueError("condition_logic must be 'and' or 'or'")
        return s

    @field_validator("action", mode="before")
    @classmethod
    def _normalise_action(cls, v: Any) -> str:
        s = str(v or RuleAction.SHOW).strip().lower()
        if s == "skip":
            s = RuleAction.HIDE
        if s not in RuleAction.ALL:
            raise ValueError(f"action must be one of {sorted(RuleAction.ALL)}")
        return s

    @model_validator(mode="after")
    def _jump_needs_target(self) -> "LogicRule":
        if self.action == RuleAction.JUMP and not self.jump_to_question_id:
            raise ValueError("jump rules require jump_to_question_id")
        return self

    @property
    def is_jump(self) -> bool:
        return bool(self.jump_to_question_id)

    @property
    def affects_visibility(self) -> bool:
        return self.action in {RuleAction.SHOW, RuleAction.HIDE}


class Question(_CamelModel):
    id: str
    type: str
    title: str = ""
    description: Optional[str] = None
    required: bool = False
    properties: QuestionProperties = Field(default_factory=QuestionProperties)
    logic: List[LogicRule] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("question id must be a non-empty string")
        return v

    @field_validator("type")
    @classmethod
    def _type_known(cls, v: str) -> str:
        if v not in QuestionType.ALL:
            raise ValueError(f"unknown question type: {v!r}")
        return v

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_default(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("logic", mode="before")
    @classmethod
    def _wrap_single_rule(cls, v: Any) -> Any:
        # The builder historically stored one rule object per question
        if v is None:
            return []
        if isinstance(v, dict):
            return [v]
        return v

    @property
    def is_structural(self) -> bool:
        return self.type in QuestionType.STRUCTURAL


class FormSettings(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    show_progress_bar: bool = True
    show_question_numbers: bool = False
    enable_partial_submissions: bool = False
    enable_prefill: bool = False
    prefill_mapping: Dict[str, str] = Field(default_factory=dict)


class Form(_CamelModel):
    id: str
    title: str = ""
    questions: List[Question] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)

    @model_validator(mode="after")
    def _check_structure(self) -> "Form":
        seen: set[str] = set()
        for q in self.questions:
            if q.id in seen:
                raise FormDefinitionError(f"duplicate question id: {q.id}")
            seen.add(q.id)
        welcome = [i for i, q in enumerate(self.questions) if q.type == QuestionType.WELCOME]
        if len(welcome) > 1:
            raise FormDefinitionError("a form may contain at most one welcome question")
        if welcome and welcome[0] != 0:
            raise FormDefinitionError("the welcome question must be first")
        thank_you = [q for q in self.questions if q.type == QuestionType.THANK_YOU]
        if len(thank_you) > 1:
            raise FormDefinitionError("a form may contain at most one thank_you question")
        return self

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def index_of(self, question_id: str) -> int:
        for i, q in enumerate(self.questions):
            if q.id == question_id:
                return i
        return -1


def parse_form(data: Any) -> Form:
    """Validate raw form data, raising FormDefinitionError on any problem."""
    try:
        return Form.model_validate(data)
    except PydanticValidationError as e:
        raise FormDefinitionError(str(e)) from e


__all__ = [
    "FormDefinitionError",
    "QuestionType",
    "LogicOperator",
    "RuleAction",
    "QuestionOption",
    "MatrixAxisItem",
    "QuestionProperties",
    "LogicCondition",
    "LogicRule",
    "Question",
    "FormSettings",
    "Form",
    "parse_form",
]

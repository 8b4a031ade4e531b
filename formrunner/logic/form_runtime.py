"""Form runtime: drives one respondent through one form.

The runtime owns the session's answers and position and is the only writer
of either. Everything it renders is derived from the current answers on
demand (visibility, piping, calculator values), so there is no cached derived
state to fall out of date.

Phases::

    resume_prompt -> welcome | question -> submitting -> submitted
                                             |  ^
                                             v  | retry
                                        submit failed

`resume_prompt` only occurs when partial submissions are enabled and a saved
draft exists; no question is shown until the respondent resumes or starts
fresh. Once `submitted`, answers and navigation are frozen.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from formrunner.config import AppConfig
from formrunner.logic.answer_canonical import is_empty_answer
from formrunner.logic.answer_codec import AnswerShapeError
from formrunner.logic.answer_store import AnswerStore
from formrunner.logic.formula import compute_calculated_values, format_calculated_value
from formrunner.logic.navigation import (
    Progress,
    get_next_question_index,
    get_previous_question_index,
    get_progress,
    question_number,
)
from formrunner.logic.partial_submissions import PartialSubmissionManager, PartialSubmissionRecord, describe_age
from formrunner.logic.piping import pipe_answers
from formrunner.logic.prefill import Params, get_prefill_from_params
from formrunner.logic.repository_forms import UnknownQuestionError
from formrunner.logic.repository_partial_submissions import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore
from formrunner.logic.scheduler import DebounceScheduler, ManualDebounceScheduler
from formrunner.logic.session_tracker import DropOffData, GeoData, SessionContext, classify_device
from formrunner.logic.submission import (
    HttpSubmissionClient,
    SubmissionBoundary,
    SubmissionMetadata,
    SubmissionOutcome,
    SubmissionPayload,
    send_drop_off_beacon,
)
from formrunner.logic.validation import ValidationResult, validate_answer
from formrunner.logic.visibility_rules import should_show_question
from formrunner.models.question import Form, Question, QuestionType

logger = logging.getLogger(__name__)


class Phase:
    RESUME_PROMPT = "resume_prompt"
    WELCOME = "welcome"
    QUESTION = "question"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


DEFAULT_SUBMIT_ERROR = "Failed to submit form"


class RenderedQuestion(BaseModel):
    question_id: str
    index: int
    type: str
    title: str
    description: Optional[str] = None
    required: bool = False
    properties: Dict[str, Any] = Field(default_factory=dict)
    answer: Any = None
    number: Optional[int] = None
    progress: Optional[Progress] = None
    calculated_value: Optional[float] = None
    formatted_value: Optional[str] = None


def render_question(form: Form, index: int, answers: Mapping[str, Any]) -> Optional[RenderedQuestion]:
    """Display-ready view of the question at `index`, or None past the end."""
    questions = form.questions
    if not 0 <= index < len(questions):
        return None
    q = questions[index]
    calculated = compute_calculated_values(questions, answers)
    # Calculator results can be piped like answers
    piped = {**answers, **{k: v for k, v in calculated.items() if v is not None}}
    rendered = RenderedQuestion(
        question_id=q.id,
        index=index,
        type=q.type,
        title=pipe_answers(q.title, questions, piped),
        description=pipe_answers(q.description, questions, piped) if q.description else q.description,
        required=q.required,
        properties=q.properties.model_dump(by_alias=True, exclude_none=True),
        answer=answers.get(q.id),
    )
    if form.settings.show_question_numbers:
        rendered.number = question_number(index, questions, answers)
    if form.settings.show_progress_bar:
        rendered.progress = get_progress(index, questions, answers)
    if q.type == QuestionType.CALCULATOR:
        value = calculated.get(q.id)
        props = q.properties
        rendered.calculated_value = value
        rendered.formatted_value = format_calculated_value(value, props.decimal_places, props.prefix, props.suffix)
    return rendered


class FormRuntime:
    def __init__(
        self,
        form: Form,
        *,
        session: Optional[SessionContext] = None,
        submitter: SubmissionBoundary,
        store: Optional[KeyValueStore] = None,
        scheduler: Optional[DebounceScheduler] = None,
        prefill: Optional[Params] = None,
        user_agent: str = "",
        geo: Optional[GeoData] = None,
        config: Optional[AppConfig] = None,
        beacon: Optional[Callable[[DropOffData], Any]] = None,
    ) -> None:
        self.form = form
        self.config = config or AppConfig()
        self.session = session or SessionContext()
        self.answers = AnswerStore()
        self.partial = PartialSubmissionManager(
            form.id,
            store if store is not None else InMemoryKeyValueStore(),
            scheduler if scheduler is not None else ManualDebounceScheduler(),
            enabled=form.settings.enable_partial_submissions,
            debounce_seconds=self.config.runtime.autosave_debounce_seconds,
            ttl_days=self.config.runtime.partial_ttl_days,
        )
        self._submitter = submitter
        self._prefill = prefill
        self._beacon = beacon
        self.user_agent = user_agent
        self.geo = geo or GeoData()
        self.current_index = 0
        self.phase: Optional[str] = None
        self.validation_error: Optional[str] = None
        self.submit_error: Optional[str] = None
        self.saved_record: Optional[PartialSubmissionRecord] = None
        self._in_flight = False

    @classmethod
    def from_config(cls, form: Form, config: AppConfig, **kwargs: Any) -> "FormRuntime":
        """Runtime wired to the configured storage URL and submission endpoint.

        Explicit `store` or `submitter` keyword arguments take precedence.
        """
        if kwargs.get("store") is None:
            kwargs["store"] = SqlKeyValueStore.from_config(config)
        if kwargs.get("submitter") is None:
            kwargs["submitter"] = HttpSubmissionClient.from_config(config)
        return cls(form, config=config, **kwargs)

    # lifecycle

    def start(self) -> str:
        self.session.start(self.form.id)
        record = self.partial.load() if self.form.settings.enable_partial_submissions else None
        if record is not None:
            self.saved_record = record
            self.phase = Phase.RESUME_PROMPT
            logger.info("runtime_resume_prompt form_id=%s saved_at=%s", self.form.id, record.saved_at.isoformat())
            return self.phase
        self._apply_prefill()
        self._enter_first()
        return self.phase or Phase.QUESTION

    def resume(self) -> bool:
        if self.phase != Phase.RESUME_PROMPT or self.saved_record is None:
            return False
        record = self.partial.resume(self.saved_record)
        self.answers.replace(record.answers)
        self.saved_record = None
        questions = self.form.questions
        index = min(max(record.current_index, 0), max(len(questions) - 1, 0))
        # a draft never reopens on a thank_you screen
        while index > 0 and questions[index].type == QuestionType.THANK_YOU:
            index -= 1
        self._enter(index)
        return True

    def start_fresh(self) -> bool:
        if self.phase != Phase.RESUME_PROMPT:
            return False
        self.partial.discard()
        self.saved_record = None
        self.answers.replace({})
        self._apply_prefill()
        self._enter_first()
        return True

    def resume_prompt_age(self) -> Optional[str]:
        if self.saved_record is None:
            return None
        return describe_age(self.saved_record.saved_at)

    # rendering

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase == Phase.RESUME_PROMPT:
            return None
        if 0 <= self.current_index < len(self.form.questions):
            return self.form.questions[self.current_index]
        return None

    def render_current(self) -> Optional[RenderedQuestion]:
        if self.current_question is None:
            return None
        return render_question(self.form, self.current_index, self.answers.view())

    # answers

    def set_answer(self, question_id: str, raw: Any) -> bool:
        """Record an answer; returns False when answers are frozen."""
        if self.phase in {Phase.SUBMITTING, Phase.SUBMITTED, Phase.RESUME_PROMPT, None}:
            logger.debug("runtime_answer_ignored form_id=%s question_id=%s phase=%s", self.form.id, question_id, self.phase)
            return False
        question = self.form.question_by_id(question_id)
        if question is None:
            raise UnknownQuestionError(self.form.id, question_id)
        value = self.answers.set(question, raw)
        if not is_empty_answer(value):
            self.session.track_question_complete(question_id)
        self.validation_error = None
        self.partial.mark_dirty(self.answers.snapshot(), self.current_index)
        return True

    def can_go_next(self) -> ValidationResult:
        question = self.current_question
        if question is None or question.type == QuestionType.WELCOME:
            return ValidationResult(valid=True)
        if question.type == QuestionType.THANK_YOU:
            return ValidationResult(valid=False)
        return validate_answer(question, self.answers.get(question.id))

    # navigation

    def handle_next(self) -> bool:
        """Advance past the current question; may trigger submission.

        Returns True when the respondent moved on (or the form was submitted).
        """
        if self.phase not in {Phase.WELCOME, Phase.QUESTION}:
            return False
        result = self.can_go_next()
        if not result.valid:
            self.validation_error = result.error
            return False
        self.validation_error = None
        questions = self.form.questions
        nxt = get_next_question_index(self.current_index, questions, self.answers.view())
        if nxt >= len(questions) or questions[nxt].type == QuestionType.THANK_YOU:
            return self.handle_submit().ok
        self._enter(nxt)
        self.partial.mark_dirty(self.answers.snapshot(), nxt)
        return True

    def handle_previous(self) -> bool:
        if self.phase not in {Phase.WELCOME, Phase.QUESTION} or self.current_index <= 0:
            return False
        questions = self.form.questions
        answers = self.answers.view()
        prev = get_previous_question_index(self.current_index, questions, answers)
        if prev == self.current_index or not should_show_question(questions[prev], answers, questions):
            return False
        self.validation_error = None
        self._enter(prev)
        self.partial.mark_dirty(self.answers.snapshot(), prev)
        return True

    # submission

    def build_payload(self) -> SubmissionPayload:
        answers = self.answers.snapshot()
        for qid, value in compute_calculated_values(self.form.questions, answers).items():
            if value is not None:
                answers[qid] = value
        metadata = SubmissionMetadata(
            user_agent=self.user_agent,
            analytics=self.session.session_analytics(),
            device=classify_device(self.user_agent),
            geo=self.geo,
        )
        return SubmissionPayload(form_id=self.form.id, answers=answers, metadata=metadata)

    def handle_submit(self) -> SubmissionOutcome:
        if self.phase == Phase.SUBMITTED:
            return SubmissionOutcome(ok=False, error="Form already submitted")
        if self._in_flight:
            logger.info("runtime_submit_refused_in_flight form_id=%s", self.form.id)
            return SubmissionOutcome(ok=False, error="Submission already in progress")
        if self.phase not in {Phase.WELCOME, Phase.QUESTION, Phase.SUBMITTING}:
            return SubmissionOutcome(ok=False, error="Form is not ready to submit")
        self.phase = Phase.SUBMITTING
        self.submit_error = None
        self._in_flight = True
        try:
            outcome = self._submitter.submit(self.build_payload())
        except Exception as e:
            logger.error("runtime_submit_boundary_error form_id=%s", self.form.id, exc_info=True)
            outcome = SubmissionOutcome(ok=False, error=str(e) or DEFAULT_SUBMIT_ERROR)
        finally:
            self._in_flight = False
        if not outcome.ok:
            self.submit_error = outcome.error or DEFAULT_SUBMIT_ERROR
            logger.warning("runtime_submit_failed form_id=%s error=%s", self.form.id, self.submit_error)
            return outcome
        self.phase = Phase.SUBMITTED
        self.partial.clear()
        self.session.clear()
        thank_you = next(
            (i for i, q in enumerate(self.form.questions) if q.type == QuestionType.THANK_YOU), None
        )
        self.current_index = thank_you if thank_you is not None else len(self.form.questions)
        logger.info("runtime_submitted form_id=%s answers=%s", self.form.id, len(self.answers))
        return outcome

    def navigate_away(self) -> None:
        """Respondent is leaving: drop the pending autosave and report drop-off."""
        self.partial.cancel_pending()
        if self.phase == Phase.SUBMITTED:
            return
        try:
            data = self.session.drop_off_data()
            if data is None:
                return
            if self._beacon is not None:
                self._beacon(data)
            else:
                endpoints = self.config.endpoints
                send_drop_off_beacon(endpoints.drop_off_url, data)
        except Exception:
            logger.warning("runtime_drop_off_failed form_id=%s", self.form.id, exc_info=True)

    # internals

    def _enter_first(self) -> None:
        """Enter the first visible question, or submit when nothing is left to ask."""
        questions = self.form.questions
        first = get_next_question_index(-1, questions, self.answers.view())
        if first < len(questions) and questions[first].type != QuestionType.THANK_YOU:
            self._enter(first)
            return
        logger.info("runtime_no_visible_questions form_id=%s", self.form.id)
        self.current_index = len(questions)
        self.phase = Phase.QUESTION
        self.handle_submit()

    def _enter(self, index: int) -> None:
        self.current_index = index
        questions = self.form.questions
        question = questions[index] if 0 <= index < len(questions) else None
        self.phase = Phase.WELCOME if question is not None and question.type == QuestionType.WELCOME else Phase.QUESTION
        if question is not None:
            self.session.track_question_view(question.id)

    def _apply_prefill(self) -> None:
        if not self._prefill or not self.form.settings.enable_prefill:
            return
        values = get_prefill_from_params(self.form.questions, self.form.settings, self._prefill)
        for qid, value in values.items():
            question = self.form.question_by_id(qid)
            if question is None:
                continue
            try:
                self.answers.set(question, value)
            except AnswerShapeError as e:
                logger.warning("runtime_prefill_rejected form_id=%s question_id=%s reason=%s", self.form.id, qid, e.reason)
        if values:
            logger.info("runtime_prefill_applied form_id=%s count=%s", self.form.id, len(values))


__all__ = ["Phase", "RenderedQuestion", "render_question", "FormRuntime"]

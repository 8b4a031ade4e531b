"""Stateless runtime endpoints.

The client owns the session state (answers and current index) and sends it
with each call; the server only evaluates. Answers are decoded per question
type before use, so a structurally wrong payload fails with 422 here instead
of producing a misleading evaluation. Prefill parameters are the exception:
a malformed one is dropped and logged.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from formrunner.logic.answer_codec import AnswerShapeError, decode_answer, decode_answers
from formrunner.logic.form_runtime import RenderedQuestion, render_question
from formrunner.logic.navigation import get_next_question_index, get_previous_question_index, get_progress
from formrunner.logic.prefill import get_prefill_from_params
from formrunner.logic.repository_forms import FormRepository
from formrunner.logic.validation import FormValidationResult, ValidationResult, validate_answer, validate_form
from formrunner.logic.visibility_rules import get_visible_questions
from formrunner.models.question import QuestionType
from formrunner.models.runtime_types import (
    AnswerRequest,
    AnswersRequest,
    NavigationRequest,
    NavigationResult,
    PrefillRequest,
    PrefillResult,
    VisibleQuestions,
)
from formrunner.routes.forms import get_form_repository


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/forms/{form_id}/visible-questions",
    summary="Compute the questions visible for the given answers",
    operation_id="getVisibleQuestions",
    tags=["Runtime"],
    response_model=VisibleQuestions,
)
def visible_questions(form_id: str, body: AnswersRequest, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    answers = decode_answers(form.questions, body.answers)
    return VisibleQuestions(question_ids=[q.id for q in get_visible_questions(form.questions, answers)])


@router.post(
    "/forms/{form_id}/navigation",
    summary="Resolve the next or previous question index",
    operation_id="navigate",
    tags=["Runtime"],
    response_model=NavigationResult,
)
def navigate(form_id: str, body: NavigationRequest, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    questions = form.questions
    answers = decode_answers(questions, body.answers)
    if body.direction == "previous":
        index = get_previous_question_index(body.current_index, questions, answers)
    else:
        index = get_next_question_index(body.current_index, questions, answers)
    is_submit = index >= len(questions) or questions[index].type == QuestionType.THANK_YOU
    if body.direction == "previous":
        is_submit = False
    logger.info(
        "runtime_navigation form_id=%s from=%s direction=%s to=%s submit=%s",
        form_id, body.current_index, body.direction, index, is_submit,
    )
    return NavigationResult(
        index=index,
        is_submit=is_submit,
        question_id=questions[index].id if index < len(questions) else None,
        progress=get_progress(index, questions, answers) if form.settings.show_progress_bar else None,
    )


@router.post(
    "/forms/{form_id}/questions/{question_id}/render",
    summary="Render one question with piping and calculator values applied",
    operation_id="renderQuestion",
    tags=["Runtime"],
    response_model=RenderedQuestion,
)
def render(form_id: str, question_id: str, body: AnswersRequest, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    forms.get_question(form_id, question_id)
    answers = decode_answers(form.questions, body.answers)
    return render_question(form, form.index_of(question_id), answers)


@router.post(
    "/forms/{form_id}/questions/{question_id}/validate",
    summary="Validate one answer",
    operation_id="validateAnswer",
    tags=["Runtime"],
    response_model=ValidationResult,
)
def validate_one(form_id: str, question_id: str, body: AnswerRequest, forms: FormRepository = Depends(get_form_repository)):
    question = forms.get_question(form_id, question_id)
    answer = decode_answer(question, body.answer) if not question.is_structural else None
    return validate_answer(question, answer)


@router.post(
    "/forms/{form_id}/validate",
    summary="Validate every currently visible question",
    operation_id="validateForm",
    tags=["Runtime"],
    response_model=FormValidationResult,
)
def validate_all(form_id: str, body: AnswersRequest, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    answers = decode_answers(form.questions, body.answers)
    return validate_form(get_visible_questions(form.questions, answers), answers)


@router.post(
    "/forms/{form_id}/prefill",
    summary="Map URL parameters to initial answers",
    operation_id="prefill",
    tags=["Runtime"],
    response_model=PrefillResult,
)
def prefill(form_id: str, body: PrefillRequest, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    values = get_prefill_from_params(form.questions, form.settings, body.params)
    answers = {}
    for qid, value in values.items():
        question = form.question_by_id(qid)
        if question is None:
            continue
        try:
            answers[qid] = decode_answer(question, value)
        except AnswerShapeError as e:
            logger.warning("prefill_value_rejected form_id=%s question_id=%s reason=%s", form_id, qid, e.reason)
    return PrefillResult(answers=answers)


__all__ = ["router"]

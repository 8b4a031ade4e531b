"""Form definition endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from formrunner.logic.repository_forms import FormRepository


router = APIRouter()
logger = logging.getLogger(__name__)


def get_form_repository(request: Request) -> FormRepository:
    return request.app.state.forms


@router.get(
    "/forms",
    summary="List published form ids",
    operation_id="listForms",
    tags=["Forms"],
)
def list_forms(forms: FormRepository = Depends(get_form_repository)):
    return {"form_ids": forms.ids()}


@router.get(
    "/forms/{form_id}",
    summary="Get a form definition",
    operation_id="getForm",
    tags=["Forms"],
)
def get_form(form_id: str, forms: FormRepository = Depends(get_form_repository)):
    form = forms.get(form_id)
    return form.model_dump(by_alias=True, exclude_none=True)


__all__ = ["router", "get_form_repository"]

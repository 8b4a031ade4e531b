"""Pydantic models for structured answer payloads.

Scalar answers (text, numbers, booleans, choice lists) are stored as plain
JSON values; the structured ones below are validated on write and stored in
their dumped dict form so the answers map stays JSON-serialisable.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


ADDRESS_FIELDS = ("street", "city", "state", "zip", "country")


class AddressAnswer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None


class UploadedFile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str
    url: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None


class PaymentAnswer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    status: str
    amount: Optional[Union[int, float]] = None
    currency: Optional[str] = None
    payment_id: Optional[str] = None
    provider: Optional[str] = None


__all__ = ["ADDRESS_FIELDS", "AddressAnswer", "UploadedFile", "PaymentAnswer"]

"""Pydantic construction surfaced as a :class:`~exoticmc.result.Result`."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from exoticmc.result import Failure, Result, Success


TModel = TypeVar("TModel", bound=BaseModel)

__all__: list[str] = ["validate_model"]


def validate_model(model_cls: type[TModel], **data: object) -> Result[TModel, ValidationError]:
    """
    Construct a Pydantic model and return validation problems as a Failure.

    Pydantic raises internally; the exception is caught here, at the single
    boundary, so option and run builders stay expression-oriented while
    keeping Pydantic's field-level messages.
    """
    try:
        return Success(model_cls(**data))
    except ValidationError as exc:
        return Failure(exc)

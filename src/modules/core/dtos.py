"""Helpers shared by the DTO boundary of every module."""

from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from modules.core.exceptions import DomainValidationError

D = TypeVar("D", bound=BaseModel)


def build_dto(dto_class: Type[D], data: Mapping[str, Any]) -> D:
    """Instantiate *dto_class*, reporting pydantic failures as a domain error."""
    try:
        return dto_class(**data)
    except PydanticValidationError as exc:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            if err["loc"]
            else err["msg"]
            for err in exc.errors()
        )
        raise DomainValidationError(detail) from exc

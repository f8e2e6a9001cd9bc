"""Typed mapping of store rows onto pydantic models."""

import logging
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from roster.core.exceptions import StoreError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_row(model: Type[ModelT], row: Dict[str, Any], operation: str) -> ModelT:
    """Validate one row; a row missing required columns is a store failure, not bad input."""
    try:
        return model.model_validate(row)
    except PydanticValidationError as e:
        logger.error(f"{operation} returned a malformed {model.__name__} row: {e}")
        raise StoreError(
            f"Malformed {model.__name__} row returned by store",
            operation=operation,
        ) from e


def parse_rows(model: Type[ModelT], rows: List[Dict[str, Any]], operation: str) -> List[ModelT]:
    return [parse_row(model, row, operation) for row in rows or []]

"""Request decoding: path ids, JSON bodies and URL queries.

JSON bodies and URL queries decode into the same pydantic models, so
`OptionalField` members behave identically on both paths. In a query the
literal string "null" stands for an explicit null.
"""

import json
from typing import Any, TypeVar
from uuid import UUID

from fastapi import Request
from pydantic import BaseModel, ValidationError

from api.errors import from_validation_error, invalid_id, invalid_json, invalid_query, field_messages

ModelT = TypeVar("ModelT", bound=BaseModel)

QUERY_NULL = "null"


def read_id(raw: str) -> UUID:
    """Parse a path parameter as a UUID."""
    try:
        return UUID(raw)
    except ValueError:
        raise invalid_id(raw)


async def json_body(request: Request) -> Any:
    """
    Dependency that decodes the request body as JSON.

    Raises:
        APIError: Bad request if the body is not valid JSON.
    """
    raw = await request.body()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise invalid_json(str(e))


def read_json(payload: Any, model: type[ModelT]) -> ModelT:
    """
    Validate a decoded JSON body into `model`.

    Raises:
        APIError: Bad request if the body is not an object, or with
            per-field messages if validation fails.
    """
    if not isinstance(payload, dict):
        raise invalid_json("Expected a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise from_validation_error(e)


def read_query(request: Request, model: type[ModelT]) -> ModelT:
    """
    Validate URL query parameters into `model`.

    Unknown keys are ignored. For repeated keys the last value wins.

    Raises:
        APIError: Bad request listing the parameters that failed to parse.
    """
    params: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key not in model.model_fields:
            continue
        params[key] = None if value == QUERY_NULL else value
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise invalid_query(field_messages(e))

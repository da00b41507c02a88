# podshop/api/responses.py
from typing import Any

from pydantic import BaseModel


def ok(data: Any = None, message: str | None = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def fail(error: str) -> dict:
    return {"success": False, "error": error}


def dump(schema: type[BaseModel], obj) -> dict:
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_many(schema: type[BaseModel], objs) -> list[dict]:
    return [dump(schema, o) for o in objs]

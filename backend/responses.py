"""Standard success envelope shared by every route."""

from typing import Any


def success(message: str = "Success", data: Any = None) -> dict:
    body: dict = {"status": "success", "message": message}
    if data is not None:
        body["data"] = data
    return body

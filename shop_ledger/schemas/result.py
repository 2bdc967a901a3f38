"""
Result envelope returned by every mutating operation.

    {"success": true,  "data": ..., "message": "..."}
    {"success": false, "error": "...", "code": "..."}
"""

from typing import Any, Literal

from pydantic import BaseModel


class ActionSuccess(BaseModel):
    success: Literal[True] = True
    data: Any = None
    message: str | None = None


class ActionFailure(BaseModel):
    success: Literal[False] = False
    error: str
    code: str


ActionResult = ActionSuccess | ActionFailure

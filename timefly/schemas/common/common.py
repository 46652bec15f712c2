# timefly/schemas/common.py
from pydantic import BaseModel

__all__ = ["ErrorResponse", "MessageResponse"]


class ErrorResponse(BaseModel):
    success: bool = False
    data: None = None
    error: str


class MessageResponse(BaseModel):
    message: str

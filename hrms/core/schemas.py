"""
Legacy response envelopes.

Mobile and web clients were written against the PHP API, so the leave
endpoints keep its two envelope shapes: ``{"success", "message"}`` for
commands and ``{"status", "message", "data"}`` for listings.
"""
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ErrorInfo(BaseModel):
    msg: str
    code: Optional[str] = None
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    errors: List[ErrorInfo]


class CommandResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "CommandResponse":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str) -> "CommandResponse":
        return cls(success=False, message=message)


class ListingResponse(BaseModel, Generic[T]):
    status: bool
    message: str
    data: List[T] = []

    @classmethod
    def found(cls, data: List[T]) -> "ListingResponse[T]":
        if data:
            return cls(status=True, message="Data Found", data=data)
        return cls(status=False, message="No Data Available", data=[])

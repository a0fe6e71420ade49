"""Response envelope shared by every successful API call."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    status_code: int = 200
    message: str = "Success"
    data: Optional[T] = None

"""
Response envelopes shared by every endpoint.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class SuccessResponse(BaseModel, Generic[DataT]):
    """``{"success": true, "data": ...}``"""

    success: bool = True
    data: DataT


class ErrorResponse(BaseModel):
    """``{"success": false, "error_kind": ..., "detail": ..., "field"?: ...}``"""

    success: bool = False
    error_kind: str
    detail: str
    # request field at fault, when one is known
    field: Optional[str] = None

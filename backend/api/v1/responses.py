"""Uniform success envelope."""

from typing import Generic, TypeVar

from core.schemas import CamelModel

DataT = TypeVar("DataT")


class ApiResponse(CamelModel, Generic[DataT]):
    status_code: int = 200
    data: DataT
    message: str = "Success"
    success: bool = True

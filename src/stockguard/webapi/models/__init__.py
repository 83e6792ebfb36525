"""API request and response models."""

from .requests import AlertActionRequest, DismissAlertRequest, StockChangeRequest
from .responses import (
    AlertData,
    AlertListResponse,
    AlertResponse,
    BaseResponse,
    ErrorResponse,
    PaginationMeta,
    StatusResponse,
    SuccessResponse,
)

__all__ = [
    "AlertActionRequest",
    "AlertData",
    "AlertListResponse",
    "AlertResponse",
    "BaseResponse",
    "DismissAlertRequest",
    "ErrorResponse",
    "PaginationMeta",
    "StatusResponse",
    "StockChangeRequest",
    "SuccessResponse",
]

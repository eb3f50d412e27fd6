"""Data models for web-tester."""

from .capture import (
    BrowserEvent,
    CapturedEvent,
    CapturedRequest,
    CapturedResponse,
    EventKind,
    FinishedLoadNotification,
    LoadingFinished,
    PostDataEntry,
    RequestData,
    RequestPayload,
    ResponseData,
    ResponsePayload,
)

__all__ = [
    "BrowserEvent",
    "CapturedEvent",
    "CapturedRequest",
    "CapturedResponse",
    "EventKind",
    "FinishedLoadNotification",
    "LoadingFinished",
    "PostDataEntry",
    "RequestData",
    "RequestPayload",
    "ResponseData",
    "ResponsePayload",
]

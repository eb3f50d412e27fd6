"""Pydantic models for browser network events and captured records.

Browser events arrive from the Chrome DevTools Protocol as plain dictionaries.
They are validated into one of three typed payloads (``RequestPayload``,
``ResponsePayload``, ``LoadingFinished``) so downstream code dispatches on the
concrete class instead of on a string tag. Unknown CDP fields are kept on the
payload, which means the JSON persisted for an event is the complete event as
the browser sent it.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventKind(str, Enum):
    """Kinds of captured events written to storage."""
    REQUEST = "request"
    RESPONSE = "response"


class CDPModel(BaseModel):
    """Base for models validated from CDP event params."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_cdp_json(self) -> str:
        """Serialize back to CDP-shaped JSON text."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class PostDataEntry(CDPModel):
    """One chunk of a request's post data."""

    data: Optional[str] = Field(default=None, alias="bytes")


class RequestData(CDPModel):
    """The ``request`` object of ``Network.requestWillBeSent``."""

    url: str
    method: str = "GET"
    headers: Dict[str, Any] = Field(default_factory=dict)
    post_data_entries: List[PostDataEntry] = Field(default_factory=list)
    has_post_data: Optional[bool] = None


class ResponseData(CDPModel):
    """The ``response`` object of ``Network.responseReceived``."""

    url: str
    status: int = 0
    status_text: str = ""
    headers: Dict[str, Any] = Field(default_factory=dict)
    mime_type: str = ""
    protocol: Optional[str] = None
    remote_ip_address: Optional[str] = Field(default=None, alias="remoteIPAddress")


class RequestPayload(CDPModel):
    """Params of ``Network.requestWillBeSent``."""

    request_id: str
    loader_id: Optional[str] = None
    document_url: Optional[str] = Field(default=None, alias="documentURL")
    request: RequestData
    timestamp: Optional[float] = None
    wall_time: Optional[float] = None
    resource_type: Optional[str] = Field(default=None, alias="type")

    @property
    def url(self) -> str:
        return self.request.url


class ResponsePayload(CDPModel):
    """Params of ``Network.responseReceived``."""

    request_id: str
    loader_id: Optional[str] = None
    timestamp: Optional[float] = None
    resource_type: Optional[str] = Field(default=None, alias="type")
    response: ResponseData

    @property
    def url(self) -> str:
        return self.response.url


class LoadingFinished(CDPModel):
    """Params of ``Network.loadingFinished``."""

    request_id: str
    timestamp: Optional[float] = None
    encoded_data_length: Optional[float] = None


BrowserEvent = Union[RequestPayload, ResponsePayload, LoadingFinished]


class CapturedRequest(BaseModel):
    """A request observed during page load."""

    request_id: str = Field(description="Browser-assigned request identifier")
    kind: Literal[EventKind.REQUEST] = EventKind.REQUEST
    url: str = Field(description="Request URL")
    payload: RequestPayload = Field(description="The requestWillBeSent event")
    body: bytes = Field(default=b"", description="Request body assembled from post data")

    @classmethod
    def from_event(cls, event: RequestPayload) -> "CapturedRequest":
        return cls(request_id=event.request_id, url=event.url, payload=event)

    def set_body(self) -> bytes:
        """Populate ``body`` from the payload's post-data entries.

        Chunked post data is concatenated in order; entries without data
        contribute nothing.
        """
        post_data = "".join(
            entry.data or "" for entry in self.payload.request.post_data_entries
        )
        self.body = post_data.encode("utf-8")
        return self.body


class CapturedResponse(BaseModel):
    """A response observed during page load.

    The body stays empty until the body fetcher stores the complete content
    returned by the browser.
    """

    request_id: str = Field(description="Browser-assigned request identifier")
    kind: Literal[EventKind.RESPONSE] = EventKind.RESPONSE
    url: str = Field(description="Response URL")
    payload: ResponsePayload = Field(description="The responseReceived event")
    body: bytes = Field(default=b"", description="Response body bytes")

    @classmethod
    def from_event(cls, event: ResponsePayload) -> "CapturedResponse":
        return cls(request_id=event.request_id, url=event.url, payload=event)

    def with_body(self, body: bytes) -> "CapturedResponse":
        return self.model_copy(update={"body": body})


CapturedEvent = Union[CapturedRequest, CapturedResponse]


class FinishedLoadNotification(BaseModel):
    """Signals that a response body can be fetched."""

    request_id: str

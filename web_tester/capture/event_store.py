"""In-memory store for events captured during one page-load session."""

import asyncio
import logging
from typing import Dict, List, Optional

from ..models.capture import CapturedRequest, CapturedResponse

logger = logging.getLogger(__name__)


class EventStore:
    """Holds captured requests and responses until the drain phase.

    Requests are an append-only list in arrival order. Responses live in a map
    keyed by request id and guarded by ``lock``; every read-modify-write of a
    response (including body updates) happens inside one critical section.
    """

    def __init__(self):
        self._requests: List[CapturedRequest] = []
        self._responses: Dict[str, CapturedResponse] = {}
        # Bodies fetched before their response event was stored
        self._pending_bodies: Dict[str, bytes] = {}
        self.lock = asyncio.Lock()

    def add_request(self, request: CapturedRequest) -> None:
        """Append a captured request."""
        self._requests.append(request)

    async def add_response(self, response: CapturedResponse) -> None:
        """Insert or replace the response for its request id."""
        async with self.lock:
            if response.request_id in self._responses:
                logger.debug(f"Replacing response for request {response.request_id}")

            pending = self._pending_bodies.pop(response.request_id, None)
            if pending is not None and not response.body:
                response = response.with_body(pending)

            self._responses[response.request_id] = response

    async def get_response(self, request_id: str) -> Optional[CapturedResponse]:
        """Return the current response for a request id, if any."""
        async with self.lock:
            return self._responses.get(request_id)

    async def set_response_body(self, request_id: str, body: bytes) -> Optional[CapturedResponse]:
        """Overwrite the body of the response stored for ``request_id``.

        Args:
            request_id: Request identifier
            body: Complete body content

        Returns:
            The updated response, or None if the response has not arrived yet.
            In that case the body is kept and attached when it does.
        """
        async with self.lock:
            current = self._responses.get(request_id)
            if current is None:
                self._pending_bodies[request_id] = body
                logger.debug(f"Body for request {request_id} arrived before its response")
                return None

            updated = current.with_body(body)
            self._responses[request_id] = updated
            return updated

    @property
    def requests(self) -> List[CapturedRequest]:
        """Snapshot of captured requests in arrival order."""
        return list(self._requests)

    async def responses(self) -> List[CapturedResponse]:
        """Snapshot of captured responses."""
        async with self.lock:
            return list(self._responses.values())

    @property
    def request_count(self) -> int:
        return len(self._requests)

    @property
    def response_count(self) -> int:
        return len(self._responses)

    def __repr__(self) -> str:
        return f"EventStore(requests={self.request_count}, responses={self.response_count})"

"""Requesting: the inbound request/response boundary as a concept.

A request is an ordinary action whose occurrence the synchronizations react
to; whichever sync calls ``respond`` decides what the caller gets back.
Pending requests live in memory only.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from bodymap.core.security import fresh_id
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)


@dataclass
class _PendingRequest:
    path: str
    fields: dict[str, Any]
    response: dict[str, Any] | None = None
    answered: asyncio.Event = field(default_factory=asyncio.Event)


class Requesting:
    name = "Requesting"

    def __init__(self):
        self._pending: dict[str, _PendingRequest] = {}

    @action(outputs=("request",))
    async def request(self, path: str, **fields) -> dict:
        """Open a request for ``path``; every other input is a request field."""
        request_id = fresh_id()
        self._pending[request_id] = _PendingRequest(path=path, fields=dict(fields))
        logger.debug(f"Request {request_id} opened for {path}")
        return {"request": request_id}

    @action(outputs=("request",))
    async def respond(self, request: str, **payload) -> dict:
        """Answer a pending request; each request is answered at most once."""
        pending = self._pending.get(request)
        if pending is None:
            return {"error": f"Request {request} does not exist."}
        if pending.response is not None:
            return {"error": f"Request {request} has already been responded to."}

        pending.response = dict(payload)
        pending.answered.set()
        return {"request": request}

    @query(outputs=("response",))
    async def _getResponse(self, request: str) -> list[dict]:
        pending = self._pending.get(request)
        if pending is None or pending.response is None:
            return []
        return [{"response": pending.response}]

    async def wait_for_response(self, request: str, timeout: float) -> dict[str, Any]:
        """Wait for the response to ``request`` and forget the request.

        Raises:
            KeyError: If the request is unknown
            asyncio.TimeoutError: If nothing responded within ``timeout`` seconds
        """
        pending = self._pending[request]
        try:
            await asyncio.wait_for(pending.answered.wait(), timeout)
        finally:
            self.discard(request)
        return pending.response

    def discard(self, request: str) -> None:
        """Forget ``request``; unknown ids are ignored."""
        if self._pending.pop(request, None) is not None:
            logger.debug(f"Request {request} discarded")

    def __len__(self) -> int:
        return len(self._pending)

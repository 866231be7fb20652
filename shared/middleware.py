"""
ASGI middleware shared by Janus services.
"""

import asyncio
from typing import Any, Dict

from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestBodyTimeout(HTTPException):
    """The client did not finish sending the request body in time."""

    def __init__(self, timeout: float):
        super().__init__(status_code=408, detail=f"Request body not received within {timeout}s")
        self.timeout = timeout


class RequestBodyTimeoutMiddleware:
    """Bound the time spent waiting for each chunk of the request body.

    Only body reads are bounded; once the body is complete ``receive`` is
    passed through untouched so disconnect listeners can wait indefinitely.
    """

    def __init__(self, app: ASGIApp, timeout: float = 10.0):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: Dict[str, Any] = {"body_complete": False}

        async def timed_receive() -> Message:
            if state["body_complete"]:
                return await receive()
            try:
                message = await asyncio.wait_for(receive(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                raise RequestBodyTimeout(self.timeout) from exc
            if message["type"] != "http.request" or not message.get("more_body", False):
                state["body_complete"] = True
            return message

        await self.app(scope, timed_receive, send)

"""Awaitable handle for an in-flight authorization request"""

import asyncio
from typing import Awaitable

from savings_gateway.domain.exceptions import AuthorizationCancelled


class PendingAuthorization:
    """
    Future-backed authorization request, decoupled from whichever surface
    asked for it.

    The awaiting caller always receives a token or a typed error. Tearing
    the requesting surface down calls cancel(), which rejects the request
    with AuthorizationCancelled and stops the underlying work.
    """

    def __init__(self, work: Awaitable[str]):
        loop = asyncio.get_running_loop()
        self._future: asyncio.Future[str] = loop.create_future()
        self._task = asyncio.ensure_future(work)
        self._task.add_done_callback(self._settle)
        self._future.add_done_callback(self._propagate_cancel)

    def done(self) -> bool:
        return self._future.done()

    def cancel(self, reason: str = "surface closed") -> bool:
        """Reject the request; returns False if it had already resolved"""
        if self._future.done():
            return False
        self._future.set_exception(AuthorizationCancelled(reason))
        # Awaiters still receive it; an abandoned handle must not log it
        self._future.exception()
        self._task.cancel()
        return True

    def __await__(self):
        return self._future.__await__()

    def _settle(self, task: "asyncio.Task[str]") -> None:
        if self._future.done():
            return
        if task.cancelled():
            self._future.set_exception(AuthorizationCancelled("cancelled"))
            return
        error = task.exception()
        if error is not None:
            self._future.set_exception(error)
        else:
            self._future.set_result(task.result())

    def _propagate_cancel(self, future: "asyncio.Future[str]") -> None:
        # The awaiting caller itself was cancelled
        if future.cancelled() and not self._task.done():
            self._task.cancel()

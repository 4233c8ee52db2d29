"""Pending-response bookkeeping for remoting requests."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from rmqclient.remote.codec import RemotingCommand


class RequestTimeoutError(TimeoutError):
    """Raised when no response arrives before the request deadline."""

    def __init__(self, message: str = "request timeout") -> None:
        super().__init__(message)


class ResponseFuture:
    """The eventual response to one request, keyed by its opaque id.

    ``timeout`` is in seconds and counts from creation; ``None`` waits forever.
    """

    def __init__(
        self,
        opaque: int,
        callback: Optional[Callable[["ResponseFuture"], None]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.opaque = opaque
        self.callback = callback
        self.response_command: Optional[RemotingCommand] = None
        self.error: Optional[BaseException] = None
        self.deadline = None if timeout is None else time.monotonic() + timeout
        self._done = threading.Event()
        self._callback_lock = threading.Lock()
        self._callback_ran = False

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def execute_invoke_callback(self) -> None:
        """Run the callback, at most once over the future's life."""
        with self._callback_lock:
            if self._callback_ran:
                return
            self._callback_ran = True
        if self.callback is not None:
            self.callback(self)

    def set_response(self, command: RemotingCommand) -> None:
        self.response_command = command
        self._done.set()

    def set_error(self, error: BaseException) -> None:
        self.error = error
        self._done.set()

    def wait_response(self) -> Optional[RemotingCommand]:
        """Block until completion; raise the stored error or a timeout."""
        remaining = None
        if self.deadline is not None:
            remaining = max(0.0, self.deadline - time.monotonic())
        if not self._done.wait(remaining):
            self.error = RequestTimeoutError()
            raise self.error
        if self.error is not None:
            raise self.error
        return self.response_command
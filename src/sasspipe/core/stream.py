# src/sasspipe/core/stream.py
import asyncio
import inspect
import logging
from typing import Callable, List, Optional, Set

from sasspipe.errors import MultipleCallbackError, StalledStreamError
from sasspipe.models import File

logger = logging.getLogger(__name__)

TransformFn = Callable[..., Optional[object]]
ErrorHandler = Callable[[BaseException, "Transform"], None]


class Continuation:
    """One-shot callback handed to a transform for a single input file."""

    def __init__(self, stream: "Transform", file: File):
        self.stream = stream
        self.file = file
        self.called = False

    def __call__(self, error: Optional[BaseException] = None, file: Optional[File] = None) -> None:
        if self.called:
            raise MultipleCallbackError(f"Callback called multiple times for {self.file.path}")
        self.called = True
        self.stream._settle(self, error, file)


class Transform:
    """
    Object-mode stream around a `transform(file, encoding, callback)` function.

    Outputs are collected in arrival order, which under async transforms is
    completion order rather than write order.
    """

    def __init__(self, transform: TransformFn):
        self.transform = transform
        self.outputs: List[File] = []
        self.errors: List[BaseException] = []
        self.ended = False
        self._handlers: List[ErrorHandler] = []
        self._pending: Set[Continuation] = set()
        self._tasks: List[asyncio.Future] = []

    def on_error(self, handler: ErrorHandler) -> "Transform":
        self._handlers.append(handler)
        return self

    def write(self, file: File, encoding: str = "utf-8") -> bool:
        if self.ended:
            logger.debug("Write after end ignored: %s", file.path)
            return False
        continuation = Continuation(self, file)
        self._pending.add(continuation)
        result = self.transform(file, encoding, continuation)
        if inspect.isawaitable(result):
            self._tasks.append(asyncio.ensure_future(result))
        return True

    def end(self) -> None:
        self.ended = True

    async def finish(self) -> List[File]:
        """Waits for in-flight transforms and returns the collected outputs."""
        while self._tasks:
            tasks, self._tasks = self._tasks, []
            await asyncio.gather(*tasks)
        if self._pending:
            stalled = ", ".join(sorted(c.file.path for c in self._pending))
            raise StalledStreamError(f"Transform never completed for: {stalled}")
        return self.outputs

    def _settle(self, continuation: Continuation, error: Optional[BaseException], file: Optional[File]) -> None:
        self._pending.discard(continuation)
        if error is not None:
            if not self._handlers:
                self.errors.append(error)
            for handler in self._handlers:
                handler(error, self)
        elif file is not None:
            self.outputs.append(file)

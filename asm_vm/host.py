"""
Host collaborators for the asm VM.

The engine never touches stdout, the clock or an event loop directly. It
calls a host object with four methods:

  write(text)          output sink for ``out``, ``dbg`` and fault reports
  sleep(seconds)       blocking delay for ``slp``
  push_event(name)     queue a notification (``nop``)
  pull_event(name)     block until the named event is delivered (``nop``)

ConsoleHost is the real thing used by the CLI. CaptureHost records
everything instead, for tests and embedding.
"""

from __future__ import annotations
from collections import deque
from typing import List, Protocol, Tuple
import logging
import sys
import time

logger = logging.getLogger(__name__)


class Host(Protocol):
    def write(self, text: str) -> None: ...
    def sleep(self, seconds: float) -> None: ...
    def push_event(self, name: str) -> None: ...
    def pull_event(self, name: str) -> None: ...


class EventQueue:
    """FIFO of named events.

    ``pull`` discards events until the wanted one comes off the queue.
    """

    def __init__(self):
        self._queue: deque = deque()

    def push(self, name: str):
        self._queue.append(name)

    def pull(self, name: str) -> str:
        while self._queue:
            event = self._queue.popleft()
            if event == name:
                return event
            logger.debug("Discarding event %r while waiting for %r", event, name)
        raise RuntimeError(f"Event queue drained while waiting for {name!r}")

    def __len__(self) -> int:
        return len(self._queue)


class ConsoleHost:
    """stdout + wall clock + in-process event queue."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.events = EventQueue()

    def write(self, text: str):
        print(text, file=self.stream, flush=True)

    def sleep(self, seconds: float):
        if seconds > 0:
            time.sleep(seconds)

    def push_event(self, name: str):
        self.events.push(name)

    def pull_event(self, name: str):
        self.events.pull(name)


class CaptureHost:
    """Records output, sleeps and events instead of performing them."""

    def __init__(self):
        self.output: List[str] = []
        self.sleeps: List[float] = []
        self.event_log: List[Tuple[str, str]] = []  # (push|pull, name)
        self.events = EventQueue()

    def write(self, text: str):
        self.output.append(text)

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)

    def push_event(self, name: str):
        self.event_log.append(('push', name))
        self.events.push(name)

    def pull_event(self, name: str):
        self.events.pull(name)
        self.event_log.append(('pull', name))

    @property
    def text(self) -> str:
        return '\n'.join(self.output)

"""
goal: hands every snapshot to all registered reporters (file writer, kafka publisher, status server).
delivery is best effort: one reporter failing is logged and the rest still get the snapshot.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from agent.snapshot import Snapshot

log = logging.getLogger(__name__)


class Reporter(Protocol):
    name: str

    def deliver(self, snapshot: Snapshot) -> None: ...

    def close(self) -> None: ...


class ReporterFanout:
    """fan-out: each reporter gets every snapshot."""

    def __init__(self, reporters: list[Reporter] | None = None) -> None:
        self._reporters: list[Reporter] = list(reporters or [])
        self._lock = threading.Lock()  # reporters may be added while the tracker thread publishes

    def add(self, reporter: Reporter) -> None:
        with self._lock:
            self._reporters.append(reporter)

    @property
    def reporters(self) -> list[Reporter]:
        with self._lock:
            return list(self._reporters)

    def publish(self, snapshot: Snapshot) -> int:
        """deliver to every reporter, returns how many succeeded"""
        ok = 0
        for rep in self.reporters:
            try:
                rep.deliver(snapshot)
                ok += 1
            except Exception as exc:
                log.warning("delivery via %s failed: %s", getattr(rep, "name", rep), exc)
        return ok

    def close(self) -> None:
        for rep in self.reporters:
            try:
                rep.close()
            except Exception as exc:
                log.warning("closing %s failed: %s", getattr(rep, "name", rep), exc)

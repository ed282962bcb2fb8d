# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: periodically captures which remote IPs hold established TCP connections to the watched local ports
and publishes one Snapshot per cycle. the capture reads the IPv4 and IPv6 tables, merges them, and hands
the result to a publish callback (usually the reporter fan-out). cycles never overlap: the next one starts
once the previous one has been published and the interval since its start has passed.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import time  # for sleeping between capture cycles
from collections.abc import Callable, Set  # type hints for callbacks and the port set

from agent.proc_tcp import TCP4_PATH, TCP6_PATH, Source, scan
from agent.snapshot import Snapshot, aggregate

# type alias for the publish callback, takes a snapshot and returns nothing
PublishFn = Callable[[Snapshot], None]
# returns True when the loop should end
StopFn = Callable[[], bool]


class ConnectionTracker:
    def __init__(
        self,
        ports: Set[int],
        publish: PublishFn,
        host: str = "",
        interval_sec: float = 10.0,
        tcp4_source: Source = TCP4_PATH,
        tcp6_source: Source = TCP6_PATH,
    ) -> None:
        self.ports = frozenset(ports)  # immutable for the life of the tracker
        self.publish = publish  # callback function to send snapshots to
        self.host = host  # host identifier stamped on every snapshot
        self.interval = interval_sec  # seconds between cycle starts
        self.tcp4_source = tcp4_source
        self.tcp6_source = tcp6_source

    def capture(self) -> Snapshot:
        # each scan gets its own fresh mapping, merging only happens in aggregate()
        tcp4 = scan(self.tcp4_source, self.ports, is_ipv6=False)
        tcp6 = scan(self.tcp6_source, self.ports, is_ipv6=True)
        return aggregate(tcp4, tcp6, self.host)

    def run_once(self) -> Snapshot:
        snap = self.capture()
        self.publish(snap)
        return snap

    def run(self, should_stop: StopFn | None = None) -> None:
        while should_stop is None or not should_stop():  # run until told to stop or killed
            started = time.monotonic()
            self.run_once()
            # drift from processing time is fine, we only wait out what is left of the interval
            remaining = self.interval - (time.monotonic() - started)
            time.sleep(max(0.0, remaining))

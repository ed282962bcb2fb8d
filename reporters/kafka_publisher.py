"""
goal: publishes one message per port entry of a snapshot to a kafka topic. messages are keyed by
"{host}:{port}" and carry the flat per-entry JSON record. sends are fire-and-forget: a failed entry
is logged and never holds back the remaining entries of the same cycle. there is no retry, the next
cycle is the retry.

the producer is created lazily on the first delivery so an unreachable broker at startup only costs
that cycle instead of killing the agent.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from agent.snapshot import Snapshot

# optional kafka client block, checked when the producer is first needed
try:
    from kafka import KafkaProducer  # type: ignore[import-untyped]

    HAVE_KAFKA = True
except Exception:
    HAVE_KAFKA = False
    KafkaProducer = None  # type: ignore

log = logging.getLogger(__name__)

ProducerFactory = Callable[[str], Any]
# how long send() may wait for metadata, keeps a dead broker from stalling a cycle
MAX_BLOCK_MS = 3000


def _json_value(value: dict[str, Any]) -> bytes:
    return json.dumps(value).encode("utf-8")


def default_producer(broker: str) -> Any:
    if not HAVE_KAFKA:
        raise RuntimeError("kafka publishing requires kafka-python (pip install kafka-python)")
    return KafkaProducer(
        bootstrap_servers=broker,
        key_serializer=lambda k: k.encode("utf-8"),
        value_serializer=_json_value,
        max_block_ms=MAX_BLOCK_MS,
    )


def message_key(record: dict[str, Any]) -> str:
    return f"{record['host']}:{record['port']}"


class KafkaReporter:
    name = "kafka"

    def __init__(
        self,
        broker: str,
        topic: str,
        producer_factory: ProducerFactory | None = None,
        flush_timeout: float = 5.0,
    ) -> None:
        self.broker = broker
        self.topic = topic
        self._factory = producer_factory or default_producer
        self._producer: Any = None
        self.flush_timeout = flush_timeout

    def _ensure_producer(self) -> Any:
        if self._producer is None:
            self._producer = self._factory(self.broker)  # raises straight to the fan-out on failure
        return self._producer

    def _on_send_error(self, key: str, exc: BaseException) -> None:
        log.warning("kafka send for %s to %s failed: %s", key, self.topic, exc)

    def deliver(self, snapshot: Snapshot) -> int:
        """issue one send per port entry, returns how many sends were issued"""
        producer = self._ensure_producer()
        issued = 0
        for record in snapshot.to_records():
            key = message_key(record)
            try:
                future = producer.send(self.topic, key=key, value=record)
            except Exception as exc:
                self._on_send_error(key, exc)
                continue
            if hasattr(future, "add_errback"):
                future.add_errback(self._on_send_error, key)
            issued += 1
        return issued

    def close(self) -> None:
        if self._producer is None:
            return
        producer, self._producer = self._producer, None
        try:
            producer.flush(timeout=self.flush_timeout)
        finally:
            producer.close()

"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)` with messages shaped as
`event_name key=value ...`. Every record is rendered as one JSON line:

    {timestamp, severity_text, severity_number, body, attributes,
     trace_id?, span_id?}

INFO and below go to stdout, WARNING and above to stderr. Structured fields
can be attached with `extra={"attributes": {...}}`.

When a database is configured, `persisted_logs()` additionally copies every
record into the `logs` table from a background task. A failed insert is
reported on stderr and never reaches the request that logged.
"""

from __future__ import annotations

import asyncio
import json
import logging
import queue
import sys
import traceback
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Any, AsyncIterator
from uuid import uuid4

from . import config, db

_SEVERITIES: dict[int, tuple[str, int]] = {
    logging.DEBUG: ("DEBUG", 5),
    logging.INFO: ("INFO", 9),
    logging.WARNING: ("WARN", 13),
    logging.ERROR: ("ERROR", 17),
    logging.CRITICAL: ("FATAL", 21),
}

# Records from these loggers are printed but not persisted.
_UNPERSISTED_LOGGERS = ("asyncpg", __name__)

_INSERT_LOG_SQL = """
    INSERT INTO logs (
      id, timestamp, severity_text, severity_number, body, attributes, trace_id, span_id
    )
    VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8)
"""

_configured = False


def severity(levelno: int) -> tuple[str, int]:
    for threshold in sorted(_SEVERITIES, reverse=True):
        if levelno >= threshold:
            return _SEVERITIES[threshold]
    return _SEVERITIES[logging.DEBUG]


def build_log_record(record: logging.LogRecord) -> dict[str, Any]:
    severity_text, severity_number = severity(record.levelno)
    attributes: dict[str, Any] = {
        "service.name": config.service_name(),
        "logger": record.name,
    }
    extra = getattr(record, "attributes", None)
    if isinstance(extra, dict):
        attributes.update(extra)
    if record.exc_info:
        attributes["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()

    payload: dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc),
        "severity_text": severity_text,
        "severity_number": severity_number,
        "body": record.getMessage(),
        "attributes": attributes,
    }
    for key in ("trace_id", "span_id"):
        value = getattr(record, key, None)
        if value:
            payload[key] = str(value)
    return payload


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = build_log_record(record)
        payload["timestamp"] = payload["timestamp"].isoformat()
        return _dumps(payload)


def configure_logging() -> None:
    global _configured
    if _configured:
        return None

    formatter = JsonFormatter()

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(formatter)
    stdout.addFilter(lambda record: record.levelno < logging.WARNING)

    stderr = logging.StreamHandler(sys.stderr)
    stderr.setFormatter(formatter)
    stderr.setLevel(logging.WARNING)

    root = logging.getLogger()
    root.addHandler(stdout)
    root.addHandler(stderr)
    root.setLevel(config.log_level())
    _configured = True


def _report_persist_failure(exc: Exception, lost: int) -> None:
    # Written directly so a broken store cannot feed back into itself.
    sys.stderr.write(
        _dumps(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "severity_text": "ERROR",
                "severity_number": 17,
                "body": "log.persist.failed",
                "attributes": {
                    "service.name": config.service_name(),
                    "message": str(exc) or type(exc).__name__,
                    "lost_records": lost,
                },
            }
        )
        + "\n"
    )


def _to_row(payload: dict[str, Any]) -> tuple[Any, ...]:
    return (
        str(uuid4()),
        payload["timestamp"],
        payload["severity_text"],
        payload["severity_number"],
        payload["body"],
        _dumps(payload["attributes"]),
        payload.get("trace_id"),
        payload.get("span_id"),
    )


class PostgresLogHandler(logging.Handler):
    """
    Buffer records in memory and insert them into `logs` in batches.

    `emit` only enqueues, so it is safe from any thread (including the
    threadpool used for password hashing). `flush_pending` runs on the event
    loop and uses the shared asyncpg pool.
    """

    def __init__(self, *, max_pending: int = 10_000, batch_size: int = 200) -> None:
        super().__init__()
        self._pending: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=max_pending)
        self.batch_size = batch_size
        self.dropped = 0

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_UNPERSISTED_LOGGERS):
            return None
        try:
            self._pending.put_nowait(build_log_record(record))
        except queue.Full:
            self.dropped += 1
        except Exception:
            self.handleError(record)

    def pending(self) -> int:
        return self._pending.qsize()

    def _take_batch(self) -> list[dict[str, Any]]:
        batch: list[dict[str, Any]] = []
        while len(batch) < self.batch_size:
            try:
                batch.append(self._pending.get_nowait())
            except queue.Empty:
                break
        return batch

    async def flush_pending(self) -> int:
        """
        Write everything queued so far. Returns the number of rows inserted.
        """
        written = 0
        while True:
            batch = self._take_batch()
            if not batch:
                return written
            try:
                await db.pool().executemany(_INSERT_LOG_SQL, [_to_row(payload) for payload in batch])
            except Exception as exc:
                _report_persist_failure(exc, len(batch))
                return written
            written += len(batch)

    async def run(self, interval_s: float = 1.0) -> None:
        while True:
            await self.flush_pending()
            await asyncio.sleep(interval_s)


@asynccontextmanager
async def persisted_logs(interval_s: float = 1.0) -> AsyncIterator[PostgresLogHandler | None]:
    """
    Persist log records to PostgreSQL for the duration of the block.

    Requires an open DB pool. Yields None when persistence is disabled.
    """
    if not config.log_persistence_enabled():
        yield None
        return

    handler = PostgresLogHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    task = asyncio.create_task(handler.run(interval_s))
    try:
        yield handler
    finally:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        root.removeHandler(handler)
        await handler.flush_pending()

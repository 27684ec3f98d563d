"""
Remote log shipping.

Forwards application log records to an HTTP log collector without blocking
request handling: records are queued by a logging handler and sent in batches
by a background task. Disabled when ``LOG_SHIPPER_URL`` is empty.
"""
import asyncio
import logging
import platform
import socket
from collections import deque
from datetime import datetime, timezone
from typing import Optional

import httpx

from schoolshare.config import get_settings
from schoolshare.utils.prometheus_metrics import record_external_request

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}


class LogShipper:
    """
    Batched, non-blocking log forwarder.

    Features:
    - bounded in-memory queue (oldest records dropped when full)
    - periodic batch flush from a background task
    - retry with linear backoff for failed sends
    """

    MAX_QUEUE_SIZE = 10000
    MAX_RETRIES = 3

    def __init__(self):
        self.settings = get_settings()
        self._queue: deque = deque(maxlen=self.MAX_QUEUE_SIZE)
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._hostname = socket.gethostname()
        self._platform = platform.system()

    @property
    def enabled(self) -> bool:
        return bool(self.settings.log_shipper_url)

    def queue_size(self) -> int:
        """Current queue length (exported as a Prometheus gauge)."""
        return len(self._queue)

    async def start(self) -> None:
        """Start the background flush task."""
        if self._running or not self.enabled:
            return
        self._running = True
        self._task = asyncio.create_task(self._process_queue())

    async def stop(self) -> None:
        """Stop the background task and flush what is left."""
        self._running = False
        if self._task:
            await self._flush_all()
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def enqueue(self, record: logging.LogRecord) -> None:
        """Queue a log record for shipping."""
        body = {
            "appKey": self.settings.log_shipper_app_key,
            "appVersion": self.settings.app_version,
            "body": record.getMessage(),
            "logLevel": _LEVEL_NAMES.get(record.levelno, "INFO"),
            "logSource": "API",
            "host": self._hostname,
            "platform": self._platform,
            "sendTime": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
        }
        event = getattr(record, "event", None)
        if event:
            body["event"] = event
        self._queue.append(body)

    async def _send_logs(self, logs: list[dict]) -> bool:
        """Send one batch; True on success."""
        if not logs or not self.enabled:
            return True

        async with record_external_request("log_shipper"):
            for attempt in range(self.MAX_RETRIES):
                try:
                    async with httpx.AsyncClient(timeout=10.0) as client:
                        response = await client.post(self.settings.log_shipper_url, json={"logs": logs})
                        response.raise_for_status()
                    return True
                except httpx.HTTPError as e:
                    if attempt < self.MAX_RETRIES - 1:
                        await asyncio.sleep(1 * (attempt + 1))
                        continue
                    # plain stdlib logger on purpose: shipping this record would recurse
                    logging.getLogger("schoolshare.log_shipper").error(
                        "Log shipping failed after retries",
                        extra={"event": "log_shipper", "error": str(e), "batch_size": len(logs), "shipped": True},
                    )
                    return False
        return False

    async def _process_queue(self) -> None:
        """Background loop flushing one batch per interval."""
        while self._running:
            try:
                await asyncio.sleep(self.settings.log_shipper_flush_interval)
                await self._flush_batch()
            except asyncio.CancelledError:
                break

    async def _flush_batch(self) -> None:
        batch = []
        while self._queue and len(batch) < self.settings.log_shipper_batch_size:
            batch.append(self._queue.popleft())
        if batch:
            await self._send_logs(batch)

    async def _flush_all(self) -> None:
        while self._queue:
            await self._flush_batch()


class ShippingHandler(logging.Handler):
    """Logging handler feeding records into a LogShipper."""

    def __init__(self, shipper: LogShipper, level: int = logging.INFO):
        super().__init__(level)
        self.shipper = shipper

    def emit(self, record: logging.LogRecord) -> None:
        # records about shipping itself are never shipped
        if getattr(record, "shipped", False):
            return
        try:
            self.shipper.enqueue(record)
        except Exception:
            self.handleError(record)


_log_shipper: Optional[LogShipper] = None


def get_log_shipper() -> LogShipper:
    """Get the process-wide shipper instance."""
    global _log_shipper
    if _log_shipper is None:
        _log_shipper = LogShipper()
    return _log_shipper


def install_log_shipping() -> Optional[LogShipper]:
    """Attach the shipping handler to the application logger when enabled."""
    shipper = get_log_shipper()
    if not shipper.enabled:
        return None
    app_logger = logging.getLogger("schoolshare")
    if not any(isinstance(h, ShippingHandler) for h in app_logger.handlers):
        app_logger.addHandler(ShippingHandler(shipper))
    return shipper

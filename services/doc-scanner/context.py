"""Per-request context threaded through scanner, extractors and clients."""

import logging
import time
import uuid
from dataclasses import dataclass, field


class _RequestLogAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] {msg}", kwargs


@dataclass(frozen=True)
class RequestContext:
    """Request id and start time for one scan; carries no mutable state."""

    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    started: float = field(default_factory=time.monotonic)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def logger(self, base: logging.Logger) -> logging.LoggerAdapter:
        """Wrap *base* so every line is prefixed with the request id."""
        return _RequestLogAdapter(base, {"request_id": self.request_id})

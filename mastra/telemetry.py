"""Tracing hooks used around step execution."""

from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class Telemetry(Protocol):
    """Wraps callables so that each call is recorded as a span."""

    def trace_method(
        self,
        fn: Callable[..., Any],
        *,
        span_name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Callable[..., Any]:
        """Return ``fn`` wrapped in a span called ``span_name``."""


class LoggingTelemetry:
    """Telemetry backend that reports spans through the ``logging`` module."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    def trace_method(
        self,
        fn: Callable[..., Any],
        *,
        span_name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Callable[..., Any]:
        attributes = dict(attributes or {})

        @functools.wraps(fn)
        async def traced(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            status = "ok"
            try:
                result = fn(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception:
                status = "error"
                raise
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.log(
                    self.level,
                    f"span {span_name} finished with {status} in {elapsed_ms:.1f}ms",
                    extra={"span": span_name, "attributes": attributes, "status": status},
                )

        return traced

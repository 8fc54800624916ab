"""
booking_engines.tracer -- BOOKING_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` wraps the engine entry points (allocation submission,
    allocation validation, pricing) and logs one trace record per call:
    which engine, which version, a fingerprint of the inputs that decide the
    result, how long it took, and whether it returned or raised.

Architecture position:
    Engines -- support code for the pure layer.  Emits log records only.

Invariants enforced:
    - Arguments are bound through the wrapped function's signature, so a
      fingerprint field is found whether it was passed by position, by
      keyword or left at its default.
    - The fingerprint is order-stable for mappings and order-sensitive for
      sequences; money values fingerprint as ``"<amount> <currency>"`` and
      dataclasses by field name.
    - An exception is logged with ``outcome="error"`` and re-raised as is.

Usage:
    @traced_engine("pricing", "1.0", fingerprint_fields=("base_amount", "add_ons"))
    def summarize_pricing(base_amount, add_ons=(), policy=None):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from booking_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_EVENT = "BOOKING_ENGINE_TRACE"


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, int, Decimal)):
        return str(value)
    amount = getattr(value, "amount", None)
    currency = getattr(value, "currency", None)
    if isinstance(amount, Decimal) and currency is not None:
        return f"{amount} {getattr(currency, 'code', currency)}"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}={_canonical(getattr(value, f.name))}" for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}({body})"
    if isinstance(value, Mapping):
        items = sorted((str(k), _canonical(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical(v) for v in value) + "]"
    return repr(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """First 16 hex chars of SHA-256 over the named arguments."""
    canonical = "|".join(f"{name}={_canonical(arguments.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)
        unknown = [name for name in fingerprint_fields if name not in signature.parameters]
        if unknown:
            raise TypeError(f"{func.__qualname__} has no parameter(s) {unknown} to fingerprint")

        def emit(fingerprint: str, started: float, outcome: str) -> None:
            logger.debug(
                TRACE_EVENT,
                extra={
                    "trace_type": TRACE_EVENT,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                    "function": func.__qualname__,
                    "outcome": outcome,
                },
            )

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception:
                emit(fingerprint, started, "error")
                raise
            emit(fingerprint, started, "ok")
            return result

        return wrapper

    return decorator

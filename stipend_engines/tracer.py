"""
stipend_engines.tracer -- STIPEND_ENGINE_TRACE records for engine calls.

``@traced_engine`` wraps a pure calculator method and logs one structured
record per call: engine name and version, wall time, and a fingerprint of
the placement inputs named in ``fingerprint_fields``.  Two calls over the
same child, family and amounts produce the same fingerprint, so traces from
different batches or fiscal-year reruns can be joined on it.

Canonical form:
    - Decimals are normalized, so ``1412`` and ``1412.00`` hash alike.
    - Dataclasses (placement DTOs, breakdowns) are walked field by field
      under their class name; enums contribute their value.
    - Dates render as ISO-8601; mappings are key-sorted; sequences keep
      their order.

The decorator reads keyword arguments only and never alters them.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("stipend_kernel.engines.tracer")


def _decimal_text(value: Decimal) -> str:
    if value.is_zero():
        return "0"
    return format(value.normalize(), "f")


def _canonicalize(value: Any) -> str:
    """Stable text for one fingerprint input."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, Decimal):
        return _decimal_text(value)
    if isinstance(value, (int, float)):
        return _decimal_text(Decimal(str(value)))
    if isinstance(value, str):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}={_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}({body})"
    if isinstance(value, Mapping):
        items = sorted((str(k), v) for k, v in value.items())
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return repr(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named keyword inputs (absent ones hash as null)."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap an engine method so each call logs STIPEND_ENGINE_TRACE.

    ``fingerprint_fields`` names the keyword arguments hashed into
    ``input_fingerprint``; with none named the fingerprint is empty.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = (
                compute_input_fingerprint(fingerprint_fields, kwargs)
                if fingerprint_fields else ""
            )
            started = time.perf_counter()
            result = func(*args, **kwargs)
            _logger.info(
                "STIPEND_ENGINE_TRACE",
                extra={
                    "trace_type": "STIPEND_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator

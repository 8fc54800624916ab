"""
booking_config -- single public entrypoint for booking configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``, which returns a ``CompiledBookingConfig``
    (engine-ready step graph, rule book, payment policy and pricing
    policy).  YAML parsing is internal to this package.

Architecture position:
    Configuration -- sits above ``booking_engines`` and below
    ``booking_services``.  The kernel and engines MUST NEVER import from
    ``booking_config``.

Invariants enforced:
    - Deterministic compilation: the same YAML always yields the same
      checksum and equal compiled objects.
    - The default configuration is parsed once per process and cached.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ConfigurationError`` / ``StepGraphError`` -- invalid values.

Audit relevance:
    Every load emits a ``BOOKING_CONFIG_TRACE`` log entry with the config
    id, version and checksum, tying a booking to the configuration that
    governed it.
"""

from __future__ import annotations

import functools
from pathlib import Path

from booking_config.compiler import CompiledBookingConfig, compile_configuration
from booking_config.loader import load_configuration
from booking_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "reservation.yaml"


def get_active_config(path: Path | str | None = None) -> CompiledBookingConfig:
    """Load, compile and cache the booking configuration at ``path``.

    Args:
        path: YAML file to load.  Defaults to
            ``booking_config/sets/reservation.yaml``.
    """
    resolved = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    return _load(str(resolved.resolve()))


@functools.lru_cache(maxsize=8)
def _load(path: str) -> CompiledBookingConfig:
    compiled = compile_configuration(load_configuration(Path(path)))
    _logger.info(
        "BOOKING_CONFIG_TRACE",
        extra={
            "trace_type": "BOOKING_CONFIG_TRACE",
            "config_id": compiled.config_id,
            "config_version": compiled.version,
            "checksum": compiled.checksum,
            "step_count": len(compiled.step_graph),
            "rule_set_count": len(compiled.rule_book.rule_sets),
        },
    )
    return compiled


def clear_config_cache() -> None:
    """Forget cached configurations. FOR TESTING ONLY."""
    _load.cache_clear()


__all__ = [
    "CompiledBookingConfig",
    "DEFAULT_CONFIG_PATH",
    "clear_config_cache",
    "get_active_config",
]

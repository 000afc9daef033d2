"""
Structured logging for aurora-bridge.

Modules log through :func:`get_logger`; nothing is printed until the
application opts in. The CLI calls :func:`setup_logging` once, which routes
structlog events to the ``aurora_bridge`` stdlib logger on stderr so stdout
stays clean for command output.

    from aurora_bridge.logging import setup_logging, get_logger

    setup_logging(level="DEBUG", log_format="json")
    log = get_logger(__name__)
    log.info("engine_connected", network="testnet")
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional, Union

import structlog
from structlog.contextvars import merge_contextvars

ROOT_LOGGER = "aurora_bridge"

# Key material that may appear in key store and signing events.
REDACT_KEYS = frozenset({"secret_key", "private_key", "seed", "key_pair", "signed_tx"})


def _redact_secrets(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for k in event_dict.keys() & REDACT_KEYS:
        if event_dict[k] is not None:
            event_dict[k] = "***"
    return event_dict


def setup_logging(level: Union[str, int] = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog and the ``aurora_bridge`` stdlib logger.

    ``log_format`` is ``"console"`` or ``"json"``. Only the package logger
    gets a handler; the root logger and other libraries are left alone.
    Calling it again replaces the previous configuration.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _redact_secrets,
    ]
    if log_format == "json":
        processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=False,
    )

    package_logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(logging.StreamHandler(sys.stderr))
    package_logger.setLevel(level)
    package_logger.propagate = False


def get_logger(name: Optional[str] = None) -> Any:
    """
    Return a lazy structlog logger named ``name``.

    The name goes to the logger factory, so module-level loggers pick up
    whatever :func:`setup_logging` installs later.
    """
    return structlog.get_logger(name or ROOT_LOGGER)


__all__ = [
    "ROOT_LOGGER",
    "setup_logging",
    "get_logger",
]

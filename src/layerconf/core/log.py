# src/layerconf/core/log.py
"""
Logging estruturado do layerconf (structlog).

A biblioteca apenas emite eventos estruturados; a configuração global do
structlog pertence à aplicação. `setup_logging` existe como conveniência
para aplicações e scripts que não possuem configuração própria.

Eventos emitidos pelo core:
    - config.source_read    (debug)  source, found, keys
    - config.loaded         (info)   environment, sources, keys, fingerprint
    - config.unloaded       (debug)
    - config.value_kept_raw (debug)  reason
    - config.set            (debug)  key

Invariantes:
    - Valores de configuração nunca são registrados (podem conter segredos)
"""

from __future__ import annotations

import sys
from typing import Any, List, cast

import structlog

_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


def setup_logging(level: str = "INFO", format: str = "console") -> None:
    """
    Configura o structlog para saída em stderr.

    Args:
        level: Nível mínimo (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: "json" para produção, "console" para desenvolvimento.
    """
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Retorna um logger structlog associado ao nome do módulo."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))

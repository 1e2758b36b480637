"""Journal JSON de l'assistant: un fichier par categorie, une ligne par evenement."""

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from unit2b.core.config import get_settings
from unit2b.core.trace import get_trace_id

# attributs passes via ``extra=`` et recopies dans la ligne JSON
CONTEXT_FIELDS = ("phase", "route", "command", "package_id", "chunk")


class JsonFormatter(logging.Formatter):
    """Serialise un enregistrement avec le trace_id de la commande en cours."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "category": record.name.removeprefix("unit2b."),
            "message": record.getMessage(),
            "trace_id": get_trace_id() or None,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


_LOGGERS: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Logger ``unit2b.<name>`` ecrivant dans ``<log_dir>/<name>.jsonl``."""
    if name in _LOGGERS:
        return _LOGGERS[name]
    settings = get_settings()
    logger = logging.getLogger(f"unit2b.{name}")
    if not logger.handlers:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / f"{name}.jsonl",
            maxBytes=settings.log_rotate_mb * 1024 * 1024,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
            delay=True,
        )
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    _LOGGERS[name] = logger
    return logger

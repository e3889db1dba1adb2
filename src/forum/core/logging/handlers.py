# src/forum/core/logging/handlers.py
"""
Handler factories for logging.dictConfig.

Each function returns a handler configuration dict (not a handler instance); the
builder registers them under fixed names:

| name            | class                                  | level      | used when                         |
| --------------- | -------------------------------------- | ---------- | --------------------------------- |
| `console`       | logging.StreamHandler                  | LOG_LEVEL  | always                            |
| `file`          | logging.handlers.RotatingFileHandler   | LOG_LEVEL  | LOG_TO_STDOUT=false and LOG_DIR   |
| `error_file`    | logging.handlers.RotatingFileHandler   | ERROR      | LOG_TO_STDOUT=false and LOG_DIR   |
| `error_console` | logging.StreamHandler                  | ERROR      | otherwise                         |

The "json" / "standard" formatters and the "request_id" / "redact" filters referenced
here are declared by builder.make_dict_config().
"""

from pathlib import Path

from forum.config.settings import Settings

_FILTERS = ["request_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(_FILTERS),
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": str(Path(settings.LOG_DIR) / "forum.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


# errors go to their own file, always structured, for alerting
def get_error_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": str(Path(settings.LOG_DIR) / "errors.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(_FILTERS),
    }

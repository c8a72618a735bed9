import logging
import json
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog

_current_instance: ContextVar[str | None] = ContextVar("n8n_instance_url", default=None)


def bind_instance(instance_url: str | None) -> None:
    """Attach the active n8n instance URL to every log line emitted afterwards."""
    _current_instance.set(instance_url)


def get_current_instance() -> str | None:
    return _current_instance.get()


class JSONContextFormatter(logging.Formatter):
    def format(self, record):
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
            "filename": record.filename,
            "instance": get_current_instance() or "-",
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Handler:
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONContextFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root_logger = logging.getLogger("n8n_remote")
    root_logger.setLevel(level.upper())
    root_logger.handlers = [handler]
    root_logger.propagate = False

    # structlog event dicts are rendered into the stdlib message, then formatted above
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    return handler

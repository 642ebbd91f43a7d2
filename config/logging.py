import json
import logging
import random
from datetime import datetime, timezone

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


def _event_of(record: logging.LogRecord) -> str:
    return getattr(record, "event", None) or str(record.msg)


class JsonFormatter(logging.Formatter):
    """One JSON object per line for production logs.

    Output keys are ``time`` (ISO-8601 UTC), ``level``, ``logger``, ``event``
    and ``message``, followed by whatever the call site passed in ``extra``
    (``order_id``, ``reference``, ``coupon`` ...). Values that do not
    serialize are stringified. Tracebacks go under ``exc``.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": _event_of(record),
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in payload:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class SamplingFilter(logging.Filter):
    """Keep a fraction of chatty records while never dropping audit events.

    ``rate`` is the kept fraction of records at one of ``levels``; records at
    other levels always pass, and so does any record whose ``event`` is listed
    in ``allow_events``.
    """

    def __init__(self, rate: float = 1.0, levels: list[str] | None = None, allow_events: list[str] | None = None):
        super().__init__()
        self.rate = min(max(float(rate), 0.0), 1.0)
        self.levels = set(levels or ["INFO"])
        self.allow_events = set(allow_events or [])

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if record.levelname not in self.levels:
            return True
        if _event_of(record) in self.allow_events:
            return True
        if self.rate >= 1.0:
            return True
        if self.rate <= 0.0:
            return False
        return random.random() < self.rate

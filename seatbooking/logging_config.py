"""Logging setup shared by the API process and the maintenance tasks."""

import contextvars
import logging
import re
import sys


request_id_ctx_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx_var.get()
        return True


# code=ABCD1234 / "code": "ABCD1234" -> keep the first 3 characters only
_RE_CODE_KV = re.compile(r"(?i)\b(code)=([A-Z0-9_-]{4,})")
_RE_CODE_JSON = re.compile(r'(?i)("code"\s*:\s*")([^"]{4,})(")')
_RE_BEARER = re.compile(r"(?i)(authorization\s*[:=]\s*bearer\s+)([a-z0-9._~+/=-]+)")


def mask_code(raw: str) -> str:
    """Mask an invitation code for log output."""
    return f"{raw[:3]}***" if len(raw) > 3 else "***"


class RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out = super().format(record)
        out = _RE_BEARER.sub(r"\1[REDACTED]", out)
        out = _RE_CODE_KV.sub(lambda m: f"{m.group(1)}={mask_code(m.group(2))}", out)
        out = _RE_CODE_JSON.sub(lambda m: f"{m.group(1)}{mask_code(m.group(2))}{m.group(3)}", out)
        return out


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        RedactingFormatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] [rid=%(request_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    # Avoid duplicate handlers when the app reloads in dev.
    root.handlers = [handler]

"""
multisig.logging: structured logging for the ``multisig`` logger tree.

Two formats, JSON lines and a plain one-line text form. Context-local fields
(trace_id, wallet, caller, index, ...) are carried in a ContextVar and merged
into every record, so a caller can bind them once per request:

    from multisig import logging as mlog

    mlog.configure(json=False, level="INFO")
    log = mlog.get_logger(__name__)

    with mlog.trace_scope():
        mlog.bind(wallet=wallet.address)
        log.info("submitted", extra={"index": 0})

The format is picked by ``json=``, else MULTISIG_LOG_FORMAT, else JSON when the
stream is not a terminal.
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
import threading
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import IO, Any, Dict, Iterator, Optional, Tuple

LOG_FORMAT_ENV = "MULTISIG_LOG_FORMAT"
ROOT_LOGGER = "multisig"

# Context keys shown up front (in this order) by the text format.
DEFAULT_CONTEXT_KEYS = ("trace_id", "component", "wallet", "caller", "index")

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


# ---------------------------------------------------------------- context


def context() -> Dict[str, Any]:
    """Copy of the fields bound in the current context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    _LOG_CONTEXT.set({**_LOG_CONTEXT.get(), **{k: _jsonable(v) for k, v in fields.items()}})


def unbind(*keys: str) -> None:
    _LOG_CONTEXT.set({k: v for k, v in _LOG_CONTEXT.get().items() if k not in keys})


def clear_context() -> None:
    _LOG_CONTEXT.set({})


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace_id for the duration of the block; the previous context comes back on exit."""
    token = _LOG_CONTEXT.set(dict(_LOG_CONTEXT.get()))
    tid = trace_id or _LOG_CONTEXT.get().get("trace_id") or short_uuid()
    bind(trace_id=tid)
    try:
        yield tid
    finally:
        _LOG_CONTEXT.reset(token)


# ------------------------------------------------------------- formatting


def _jsonable(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, (set, frozenset)):
        return [_jsonable(x) for x in sorted(v, key=str)]
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, _dt.datetime):
        return (v if v.tzinfo else v.replace(tzinfo=_dt.timezone.utc)).isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(v))
    return str(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")}


def _now() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _exc_text(record: logging.LogRecord) -> str:
    return "".join(traceback.format_exception(*record.exc_info)).rstrip() if record.exc_info else ""


class JSONFormatter(logging.Formatter):
    """One JSON object per line. Context fields win over call-site extras of the same name."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _now(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "tid": threading.get_ident(),
            **context(),
        }
        for k, v in _extras(record).items():
            out.setdefault(k, _jsonable(v))
        if record.exc_info:
            out["err"] = _exc_text(record)
        return json.dumps(out, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    ``<ts> | <LEVEL> | <logger> | <context> <extras> | <message>``, e.g.

        2026-01-05T12:34:56.789+00:00 | INFO  | multisig.queue | wallet=0x.. index=3 | executed
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        fields = [f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None]
        fields += [f"{k}={_jsonable(v)}" for k, v in _extras(record).items() if k not in ctx]

        parts = [_now(), f"{record.levelname:<5}", record.name]
        if fields:
            parts.append(" ".join(fields))
        parts.append(record.getMessage())
        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + _exc_text(record)
        return line


# ------------------------------------------------------------------ setup


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: IO[str] = sys.stderr,
    file_path: Optional[Path | str] = None,
    propagate_existing: bool = False,
) -> None:
    """
    Install handlers on the ``multisig`` logger.

    `file_path`, when given, additionally receives JSON lines whatever the
    console format is. With `propagate_existing` the current handlers are kept.
    """
    lvl = _level(level)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(lvl)
    if not propagate_existing:
        for h in list(root.handlers):
            root.removeHandler(h)

    use_json = _want_json(json, stream)
    handlers: list[Tuple[logging.Handler, logging.Formatter]] = [
        (logging.StreamHandler(stream), JSONFormatter() if use_json else TextFormatter())
    ]
    if file_path:
        p = Path(file_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        handlers.append((logging.FileHandler(p, encoding="utf-8"), JSONFormatter()))

    for handler, formatter in handlers:
        handler.setLevel(lvl)
        handler.setFormatter(formatter)
        root.addHandler(handler)


def configure_from_config(cfg: Any) -> None:
    """Configure logging from a `multisig.config.MultisigConfig`."""
    fmt = getattr(cfg, "log_format", "auto")
    configure(
        json=None if fmt == "auto" else fmt == "json",
        level=getattr(cfg, "log_level", "INFO"),
        file_path=getattr(cfg, "log_file", None),
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or ROOT_LOGGER)


def with_fields(logger: logging.Logger, **fields: Any) -> "ContextAdapter":
    """Adapter that adds `fields` to every record it logs."""
    return ContextAdapter(logger, extra={k: _jsonable(v) for k, v in fields.items()})


class ContextAdapter(logging.LoggerAdapter):
    """Merges the adapter's fields with call-site ``extra={...}``; the call site wins."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = kwargs.get("extra")
        kwargs["extra"] = {**self.extra, **extra} if isinstance(extra, dict) else dict(self.extra)
        return msg, kwargs


def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    lvl = logging.getLevelName(level.upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def _want_json(flag: Optional[bool], stream: IO[str]) -> bool:
    if flag is not None:
        return flag
    env = os.environ.get(LOG_FORMAT_ENV, "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    isatty = getattr(stream, "isatty", None)
    return not (callable(isatty) and isatty())


__all__ = [
    "context",
    "bind",
    "unbind",
    "clear_context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "configure_from_config",
    "get_logger",
    "with_fields",
    "ContextAdapter",
]

"""videostamper のロギング設定。

コンソール出力は tqdm 経由で書き込み、進捗バーと行が混ざらないようにする。
レコードは QueueHandler に積み、別スレッドの QueueListener が各ハンドラへ配る。
"""

import atexit
import inspect
import json
import logging
import os
import queue
import sys
import time
from contextlib import contextmanager, suppress
from datetime import datetime
from functools import wraps
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Iterator, List, Optional

from tqdm import tqdm

LOGGER_NAME = "videostamper"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"

# CLI の詳細度 -> ログレベル
VERBOSITY_LEVELS = {
    "none": logging.WARNING,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
}


def _timestamp(formatter: logging.Formatter, record: logging.LogRecord) -> str:
    return f"{formatter.formatTime(record, formatter.datefmt)}.{int(record.msecs):03d}"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``kv_pairs`` are merged into the top level."""

    def format(self, record):
        payload: Dict[str, Any] = {
            "timestamp": _timestamp(self, record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "kv_pairs", None) or {})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class KVFormatter(logging.Formatter):
    """``2024-05-01 12:00:00.000 - INFO - [Event=PhaseStart][Phase=Stamp] message``"""

    def format(self, record):
        pairs = getattr(record, "kv_pairs", None) or {}
        tags = "".join(f"[{key}={value}]" for key, value in pairs.items())
        return f"{_timestamp(self, record)} - {record.levelname} - {tags} {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """Writes through ``tqdm.write`` (stderr) so progress bars are redrawn below."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:  # pragma: no cover
            self.handleError(record)


def _build_formatter(log_json: bool, log_kv: bool) -> logging.Formatter:
    if log_json:
        return JsonFormatter(datefmt=DATE_FORMAT)
    if log_kv:
        return KVFormatter(datefmt=DATE_FORMAT)
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)


def _file_handler(log_dir: str, formatter: logging.Formatter) -> logging.FileHandler:
    os.makedirs(log_dir, exist_ok=True)
    name = datetime.now().strftime("videostamper_%Y%m%d_%H%M%S_%f")[:-3] + ".log"
    handler = logging.FileHandler(os.path.join(log_dir, name), encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_json: bool = False,
    log_kv: bool = False,
    level: Optional[int] = None,
    log_dir: Optional[str] = None,
):
    """
    Configure the ``videostamper`` logger.

    Args:
        log_json (bool): Emit one JSON object per record.
        log_kv (bool): Emit ``[Key=Value]`` tags before the message.
            ``log_json`` wins when both are set.
        level (int): Logger level, INFO when omitted.
        log_dir (str): When set, records are also written to a timestamped
            file in this directory.
    """
    stamper_logger = logging.getLogger(LOGGER_NAME)
    if getattr(stamper_logger, "_queue_listener", None) is not None or stamper_logger.handlers:
        shutdown_logging()

    stamper_logger.setLevel(logging.INFO if level is None else level)
    formatter = _build_formatter(log_json, log_kv)

    console = TqdmLoggingHandler()
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]
    if log_dir:
        handlers.append(_file_handler(log_dir, formatter))

    records: "queue.Queue[logging.LogRecord]" = queue.Queue(-1)
    stamper_logger.addHandler(QueueHandler(records))
    stamper_logger.propagate = False

    listener = QueueListener(records, *handlers, respect_handler_level=True)
    listener.start()
    stamper_logger._queue_listener = listener  # type: ignore[attr-defined]
    stamper_logger._sinks = handlers  # type: ignore[attr-defined]

    if not getattr(setup_logging, "_atexit_registered", False):
        atexit.register(shutdown_logging)
        setup_logging._atexit_registered = True  # type: ignore[attr-defined]
    return stamper_logger


def shutdown_logging() -> None:
    """Drain the queue, then close every handler. Safe to call repeatedly."""
    stamper_logger = logging.getLogger(LOGGER_NAME)

    listener = getattr(stamper_logger, "_queue_listener", None)
    if listener is not None:
        with suppress(Exception):
            listener.stop()
        stamper_logger._queue_listener = None  # type: ignore[attr-defined]

    sinks = getattr(stamper_logger, "_sinks", None) or []
    for handler in [*sinks, *stamper_logger.handlers]:
        with suppress(Exception):
            handler.flush()
            handler.close()
    for handler in list(stamper_logger.handlers):
        stamper_logger.removeHandler(handler)
    stamper_logger._sinks = []  # type: ignore[attr-defined]

    # 残った進捗バーを閉じてプロンプトを崩さない
    for bar in list(getattr(tqdm, "_instances", None) or []):
        with suppress(Exception):
            bar.close()


class KVLogger(logging.Logger):
    """Logger with ``kv_*`` helpers that attach key/value pairs to a record."""

    def kv_log(self, level: int, msg, kv_pairs: Optional[Dict[str, Any]] = None, *args, **kwargs):
        extra = dict(kwargs.pop("extra", None) or {})
        extra["kv_pairs"] = dict(kv_pairs or {})
        self.log(level, msg, *args, extra=extra, **kwargs)

    def kv_debug(self, msg, kv_pairs: Optional[Dict[str, Any]] = None, *args, **kwargs):
        self.kv_log(logging.DEBUG, msg, kv_pairs, *args, **kwargs)

    def kv_info(self, msg, kv_pairs: Optional[Dict[str, Any]] = None, *args, **kwargs):
        self.kv_log(logging.INFO, msg, kv_pairs, *args, **kwargs)

    def kv_warning(self, msg, kv_pairs: Optional[Dict[str, Any]] = None, *args, **kwargs):
        self.kv_log(logging.WARNING, msg, kv_pairs, *args, **kwargs)

    def kv_error(self, msg, kv_pairs: Optional[Dict[str, Any]] = None, *args, **kwargs):
        self.kv_log(logging.ERROR, msg, kv_pairs, *args, **kwargs)


@contextmanager
def _timed(logger_instance: logging.Logger, name: str) -> Iterator[None]:
    start = time.monotonic()
    if isinstance(logger_instance, KVLogger):
        logger_instance.kv_debug(f"--- Starting: {name} ---", kv_pairs={"Event": "Start", "Function": name})
    else:
        logger_instance.debug(f"--- Starting: {name} ---")
    try:
        yield
    finally:
        duration = time.monotonic() - start
        msg = f"--- Finished: {name}. Duration: {duration:.2f} seconds ---"
        if isinstance(logger_instance, KVLogger):
            logger_instance.kv_debug(
                msg,
                kv_pairs={"Event": "Finish", "Function": name, "Duration": f"{duration:.2f}s"},
            )
        else:
            logger_instance.debug(msg)


def time_log(logger_instance: logging.Logger):
    """Log start/finish and duration of a function at DEBUG level.

    Coroutine functions get an async wrapper so the duration covers the
    awaited work. Methods are reported as ``ClassName.method``.
    """

    def decorator(func):
        def _name(args) -> str:
            if args and not isinstance(args[0], (str, int, float)) and hasattr(args[0], func.__name__):
                return f"{type(args[0]).__name__}.{func.__name__}"
            return func.__name__

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                with _timed(logger_instance, _name(args)):
                    return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with _timed(logger_instance, _name(args)):
                return func(*args, **kwargs)

        return sync_wrapper

    return decorator


def is_trace_enabled() -> bool:
    """True when ``--debug`` asked for ffmpeg commands and per-pair overlap traces."""
    return bool(getattr(logging.getLogger(LOGGER_NAME), "_trace", False))


def set_verbosity(verbosity: str) -> int:
    """Apply a CLI verbosity name (none/info/verbose/debug) to the logger."""
    name = (verbosity or "none").lower()
    level = VERBOSITY_LEVELS.get(name, logging.WARNING)
    stamper_logger = logging.getLogger(LOGGER_NAME)
    stamper_logger.setLevel(level)
    stamper_logger._trace = name == "debug"  # type: ignore[attr-defined]
    return level


def get_logger() -> KVLogger:
    """Return the ``videostamper`` logger, configuring defaults on first use."""
    logging.setLoggerClass(KVLogger)
    stamper_logger = logging.getLogger(LOGGER_NAME)
    if not stamper_logger.handlers:
        setup_logging()
    return stamper_logger  # type: ignore[return-value]


logger = get_logger()

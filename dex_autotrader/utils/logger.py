from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
import os, re, functools, time
from pathlib import Path

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "1048576"))
_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))
_FILE_LOGS = os.getenv("LOG_TO_FILE", "true").lower() == "true"

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that flood DEBUG with per-request lines
_NOISY = ("urllib3", "web3", "httpx", "httpcore", "asyncio")

# labelled private keys, OpenAI keys and Telegram bot tokens
_SECRET_PATTERNS = (
    re.compile(r"(private[_ ]?key\s*[=:]\s*)(0x)?[0-9a-fA-F]{64}"),
    re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"),
    re.compile(r"(bot)\d+:[A-Za-z0-9_\-]{20,}"),
)


class _RedactSecrets(logging.Filter):
    """Masks API keys and private keys before a record reaches any handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        clean = msg
        for pattern in _SECRET_PATTERNS:
            clean = pattern.sub(lambda m: (m.group(1) if m.groups() else "") + "***", clean)
        if clean != msg:
            record.msg, record.args = clean, None
        return True


class _LoggerManager:
    def __init__(self) -> None:
        self._configured = False
        self._file_handlers: dict[str, logging.Handler] = {}
        self._log_dir = os.getenv("LOG_DIR", "./logs")
        self._redact = _RedactSecrets()

    def _level(self) -> int:
        return getattr(logging, _DEFAULT_LEVEL, logging.INFO)

    def _ensure(self) -> None:
        if self._configured:
            return

        root = logging.getLogger()
        root.setLevel(self._level())
        if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
            sh = logging.StreamHandler()
            sh.setLevel(self._level())
            sh.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
            sh.addFilter(self._redact)
            root.addHandler(sh)

        for name in _NOISY:
            logging.getLogger(name).setLevel(max(self._level(), logging.WARNING))

        if _FILE_LOGS:
            Path(self._log_dir).mkdir(parents=True, exist_ok=True)
        self._configured = True

    def _file_name(self, name: str) -> str:
        # dex_autotrader.services.web3_service -> services_web3_service.log
        short = name.split(".", 1)[1] if name.startswith("dex_autotrader.") else name
        return short.replace(".", "_").replace("/", "_") + ".log"

    def setup_logger(self, name: str) -> logging.Logger:
        self._ensure()
        logger = logging.getLogger(name)

        if _FILE_LOGS and name not in self._file_handlers:
            file_path = os.path.join(self._log_dir, self._file_name(name))
            try:
                fh = RotatingFileHandler(file_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
                fh.setLevel(self._level())
                fh.setFormatter(logging.Formatter(fmt="%(asctime)s | %(levelname)s | %(message)s", datefmt=_DATEFMT))
                fh.addFilter(self._redact)
                self._file_handlers[name] = fh
                logger.addHandler(fh)
            except OSError as e:
                logging.getLogger(__name__).warning(f"File logging disabled for {name}: {e}")
                self._file_handlers[name] = logging.NullHandler()

        return logger


logger_manager = _LoggerManager()


def _short(value, limit: int = 120) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[:limit] + "…"


def log_function(func):
    """DEBUG entry/exit with timing; exceptions are logged with traceback and re-raised."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logger_manager.setup_logger(func.__module__)
        if logger.isEnabledFor(logging.DEBUG):
            shown = [_short(a) for a in args[1:]] if args else []
            logger.debug(f"→ {func.__qualname__} args={shown} kwargs={ {k: _short(v) for k, v in kwargs.items()} }")
        t0 = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            logger.debug(f"← {func.__qualname__} ({(time.perf_counter() - t0) * 1000:.1f} ms)")
            return result
        except Exception as e:
            logger.exception(f"✗ {func.__qualname__}: {e}")
            raise
    return wrapper

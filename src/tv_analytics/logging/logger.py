import glob
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

_INITIALIZED = False


class SizeTimestampRotatingFileHandler(RotatingFileHandler):
    """Rotate the query log once it reaches maxBytes.

    The active log stays at the configured path. A full log is renamed to
    <stem>_<YYYYmmdd_HHMMSS>[_n]<suffix> next to it, and backupCount=N keeps
    only the newest N of those (0 keeps them all).
    """

    def _parts(self):
        base = Path(self.baseFilename)
        return base.parent, base.stem, base.suffix or ".log"

    def rotation_target(self, now: Optional[datetime] = None) -> str:
        folder, stem, suffix = self._parts()
        ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        target = folder / f"{stem}_{ts}{suffix}"
        n = 1
        while target.exists():
            target = folder / f"{stem}_{ts}_{n}{suffix}"
            n += 1
        return str(target)

    def prune_rotated(self) -> None:
        if not self.backupCount:
            return
        folder, stem, suffix = self._parts()
        rotated = sorted(
            glob.glob(str(folder / f"{stem}_*{suffix}")), key=os.path.getmtime, reverse=True
        )
        for old in rotated[self.backupCount:]:
            try:
                os.remove(old)
            except OSError:
                pass

    def doRollover(self) -> None:
        if self.stream:
            try:
                self.stream.close()
            finally:
                self.stream = None

        if os.path.exists(self.baseFilename):
            try:
                os.replace(self.baseFilename, self.rotation_target())
            except OSError:
                # rename refused (file held open elsewhere); keep appending
                pass
        self.prune_rotated()

        if not self.delay:
            self.stream = self._open()


def init_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/tv_analytics.log",
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 0,             # 0 = keep all rotated logs
) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    handlers: list = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(
            0,
            SizeTimestampRotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            ),
        )

    logging.basicConfig(level=level, format=fmt, handlers=handlers)
    _INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"tv_analytics.{name}")


@contextmanager
def log_duration(logger: logging.Logger, message: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Log `message` with elapsed_ms once the block finishes.

    The yielded dict is merged into the record's extras, so the block can add
    fields it only knows at the end (row counts, for instance). A block that
    raises is logged at ERROR with the exception type and re-raised.
    """
    extra: Dict[str, Any] = dict(fields)
    start = time.perf_counter()
    try:
        yield extra
    except Exception as e:
        extra["elapsed_ms"] = round((time.perf_counter() - start) * 1000, 2)
        extra["error"] = type(e).__name__
        logger.error(f"{message} failed", extra=extra)
        raise
    extra["elapsed_ms"] = round((time.perf_counter() - start) * 1000, 2)
    logger.info(message, extra=extra)

import logging
import re
import sys
from pathlib import Path

_KEY_QUERY_RE = re.compile(r"([?&]key=)[^&\s]+")


def redact(text: str) -> str:
    """Hide API keys passed as ``key=`` query parameters."""
    return _KEY_QUERY_RE.sub(r"\1***", text)


class Log:
    """Centralized logging for every snapsight service."""

    _logger: logging.Logger = logging.getLogger("snapsight")
    _format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    @classmethod
    def configure(cls, log_level: str, log_file: Path | None = None) -> None:
        """Set the level and attach the stderr (and optional file) handler once."""
        cls._logger.setLevel(log_level.upper())
        if cls._logger.handlers:
            return
        formatter = logging.Formatter(cls._format)
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        cls._logger.addHandler(stream)
        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            cls._logger.addHandler(file_handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(redact(message), extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(redact(message), extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(redact(message), extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(redact(message), extra=kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log an error message with the active traceback."""
        cls._logger.exception(redact(message), extra=kwargs)

"""
Настройка логирования для Markdown Server
"""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from mdserver.settings import settings


_logging_configured = False


def setup_logging(level: Optional[str] = None, force: bool = False) -> None:
    """Настраивает логирование для всего приложения"""
    global _logging_configured
    if _logging_configured and not force:
        return

    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.ENVIRONMENT == "production":
        # JSON формат для production
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            timestamp=True
        )
    else:
        formatter = logging.Formatter(settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Тишина для шумных библиотек
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Получить logger для модуля"""
    return logging.getLogger(name)

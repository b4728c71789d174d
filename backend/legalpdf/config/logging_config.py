"""
日志配置 - 控制台输出 + 可选滚动文件

各模块统一使用 logging.getLogger(__name__)，这里只负责给 "legalpdf" 根记录器装配 handler。
"""

from __future__ import annotations

import logging
import logging.handlers

from .runtime_config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_MAX_SIZE_MB = 5
LOG_BACKUP_COUNT = 3


def setup_logging(config: LoggingConfig | None = None, *, debug: bool = False) -> logging.Logger:
    """
    装配 legalpdf 日志（可重复调用，旧 handler 会被替换）

    Args:
        config: 日志配置，None 时使用默认值
        debug: 强制 DEBUG 级别（命令行 --debug）

    Returns:
        "legalpdf" 根记录器
    """
    config = config or LoggingConfig()
    logger = logging.getLogger("legalpdf")
    level = logging.DEBUG if debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)

    if config.log_to_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger

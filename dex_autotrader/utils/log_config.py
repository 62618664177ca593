"""Single import point for logging helpers: ``from dex_autotrader.utils.log_config import logger_manager, log_function``."""

from dex_autotrader.utils.logger import logger_manager, log_function

__all__ = ["logger_manager", "log_function"]

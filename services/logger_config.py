# services/logger_config.py
import logging
from logging.handlers import RotatingFileHandler
import os
from config import settings

def setup_logging(console: bool = True) -> logging.Logger:
    """
    Sets up the logging configuration for the patent RAG service.
    Logs are written to a rotating file and, optionally, to the console.

    The CLI passes console=False for commands whose stdout is the result
    (search/query) so log lines go to stderr only at WARNING and above.
    """
    logger = logging.getLogger(settings.LOGGER_NAME)

    # Avoid adding duplicate handlers if this function is called multiple times
    if logger.hasHandlers():
        logger.handlers.clear()

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
    )

    # File Handler: Rotates logs to prevent large files.
    try:
        log_dir = os.path.dirname(settings.LOG_FILE_PATH)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            settings.LOG_FILE_PATH,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Error setting up file logger: {e}")

    logger.propagate = False

    # Console Handler (stderr). Quiet mode keeps stdout clean for CLI output.
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level if console else logging.WARNING)
    logger.addHandler(console_handler)

    logger.debug("Logging configured successfully.")
    return logger

import os
import logging
from typing import Optional

from colorama import Fore, Style

LOGGER_NAME = "azautomation"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ColorPrinter:
    """Colored console messages for the operator, alongside the log file"""
    TAGS = {
        "info": ("INFO", Fore.BLUE),
        "step": ("STEP", Fore.CYAN),
        "success": ("SUCCESS", Fore.GREEN),
        "warning": ("WARNING", Fore.YELLOW),
        "error": ("ERROR", Fore.RED),
    }

    @classmethod
    def _emit(cls, kind, text):
        tag, color = cls.TAGS[kind]
        print(f"{color}[{tag}]{Style.RESET_ALL} {text}")

    @classmethod
    def print_info(cls, text):
        cls._emit("info", text)

    @classmethod
    def print_step(cls, text, logger: Optional[logging.Logger] = None):
        """Announce one provisioning step and record it in the log"""
        if logger:
            logger.info(text)
        cls._emit("step", text)

    @classmethod
    def print_success(cls, text):
        cls._emit("success", text)

    @classmethod
    def print_warning(cls, text):
        cls._emit("warning", text)

    @classmethod
    def print_error(cls, text):
        cls._emit("error", text)



def setup_logger(log_file_path: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """Configure the azautomation logger

    Args:
        log_file_path: Path to log file. If None, the console handler is the only one.
        verbose: Lower the console handler to DEBUG instead of WARNING.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    console_level = logging.DEBUG if verbose else logging.WARNING

    # Return existing logger if already configured
    if logger.handlers:
        for handler in logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(console_level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_file_path, encoding='utf-8')
        fh.setLevel(logging.INFO)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)
    return logger

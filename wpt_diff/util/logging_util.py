import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict

from colorama import Fore, Style, init

from wpt_diff.data.config import DEBUG_LOG
from wpt_diff.util.misc_util import touch

init(autoreset=True)

# --- Default Logging Utility Names ---
DEFAULT_DEBUG_UTILITY_NAME = "debug"
DEFAULT_RUN_UTILITY_NAME = "run"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")


class CustomFormatter(logging.Formatter):
    """
    Custom formatter to include thread and process information.
    """

    def format(self, record):
        record.thread_id = threading.get_ident()
        record.thread_name = threading.current_thread().name
        record.process_id = os.getpid()
        return super().format(record)


class ConsoleFormatter(logging.Formatter):
    """
    Colored, marker-prefixed formatter for terminal output.
    """

    STYLES = {
        logging.DEBUG: (Style.DIM, "ൠ >"),
        logging.INFO: (Fore.CYAN, "i >"),
        SUCCESS: (Fore.GREEN, "✓ >"),
        logging.WARNING: (Fore.YELLOW, "⚠ >"),
        logging.ERROR: (Fore.RED, "! >"),
        logging.CRITICAL: (Fore.RED + Style.BRIGHT, "! >"),
    }

    def format(self, record):
        color, marker = self.STYLES.get(record.levelno, ("", ">"))
        return f"{color}{marker}{Style.RESET_ALL} {record.getMessage()}"


class LoggingUtility:
    """
    Logging utility writing to the console and, optionally, to a rotating log file.
    """

    def __init__(self, name: str, log_file: Optional[str] = None, log_level=logging.INFO,
                 console_level: Optional[int] = None, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
        """
        Initialize the logging utility.

        Args:
            name (str): Name of the logging utility.
            log_file (Optional[str]): Path to the log file. If None, logs to console only.
            log_level (int): Level of the logger itself (and of the file handler).
            console_level (Optional[int]): Level of the console handler. Defaults to log_level.
            max_bytes (int): Maximum size of the log file in bytes before rotation.
            backup_count (int): Number of backup log files to keep.
        """
        self.name = name
        self.logger = logging.getLogger(f"wpt_diff_{name}")

        # Clear any existing handlers to avoid duplication
        if self.logger.handlers:
            self.logger.handlers.clear()

        self.logger.setLevel(log_level)
        # Prevent propagation to avoid duplicate logs
        self.logger.propagate = False

        self.formatter = CustomFormatter(
            "%(asctime)s - %(process_id)d - %(thread_id)d - %(thread_name)s - %(levelname)s - %(message)s"
        )

        self._add_console_handler(log_level if console_level is None else console_level)
        if log_file:
            self._add_file_handler(log_file, max_bytes, backup_count)

    def _add_console_handler(self, level: int):
        """
        Add a colored console handler to the logger.
        """
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter())
        self.logger.addHandler(console_handler)

    def _add_file_handler(self, log_file: str, max_bytes: int, backup_count: int):
        """
        Add a file handler to the logger.

        Args:
            log_file (str): Path to the log file.
            max_bytes (int): Maximum size of the log file in bytes.
            backup_count (int): Number of backup files to keep.
        """
        # Make sure the directory exists
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        touch(log_file)
        file_handler = RotatingFileHandler(
            log_file,
            encoding="utf-8",
            maxBytes=max_bytes,
            backupCount=backup_count,
            delay=True  # Delay file opening until first log
        )
        file_handler.setFormatter(self.formatter)
        self.logger.addHandler(file_handler)

    def get_logger(self) -> logging.Logger:
        """
        Get the configured logger instance.

        Returns:
            logging.Logger: The logger instance.
        """
        return self.logger


_utilities_lock = threading.RLock()
_utilities: Dict[str, LoggingUtility] = {}


def create_logging_utility(name: str, log_file: Optional[str] = None, log_level=logging.INFO,
                           console_level: Optional[int] = None, max_bytes: int = 10 * 1024 * 1024,
                           backup_count: int = 5) -> LoggingUtility:
    """
    Creates and registers a new LoggingUtility, replacing any utility with the same name.

    Args:
        name (str): Name of the logging utility.
        log_file (Optional[str]): Path to the log file. If None, logs to console only.
        log_level (int): Logger level.
        console_level (Optional[int]): Console handler level.
        max_bytes (int): Maximum size of the log file in bytes before rotation.
        backup_count (int): Number of backup log files to keep.

    Returns:
        LoggingUtility: The created logging utility.
    """
    with _utilities_lock:
        utility = LoggingUtility(name, log_file, log_level, console_level, max_bytes, backup_count)
        _utilities[name] = utility
        return utility


def get_utility_logger(utility_name: str) -> logging.Logger:
    """
    Gets the logger of the utility itself.

    Args:
        utility_name (str): Name of the logging utility.

    Returns:
        logging.Logger: The utility logger.

    Raises:
        ValueError: If the specified logging utility does not exist.
    """
    with _utilities_lock:
        if utility_name not in _utilities:
            if utility_name == DEFAULT_DEBUG_UTILITY_NAME:
                create_logging_utility(DEFAULT_DEBUG_UTILITY_NAME, DEBUG_LOG, logging.DEBUG,
                                       max_bytes=5 * 1024 * 1024, backup_count=3)
            else:
                raise ValueError(f"Logging utility '{utility_name}' not found and is not a default utility.")

        return _utilities[utility_name].get_logger()


def console_level_for(debug: bool = False, verbose: bool = False, silent: bool = False) -> int:
    """Maps the run flags onto the console log level."""
    if silent:
        return logging.ERROR
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


class WptLogger:
    """
    The logger handed to every WPT-diff component.

    Mirrors the debug/info/warn/error/success surface of the run. Arguments are
    joined with spaces, like print(). Handler failures are reported by the
    logging module itself and never reach the caller.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, args):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, " ".join(str(arg) for arg in args))

    def debug(self, *args):
        self._log(logging.DEBUG, args)

    def info(self, *args):
        self._log(logging.INFO, args)

    def warn(self, *args):
        self._log(logging.WARNING, args)

    def error(self, *args):
        self._log(logging.ERROR, args)

    def success(self, *args):
        self._log(SUCCESS, args)


def create_run_logger(debug: bool = False, verbose: bool = False, silent: bool = False,
                      log_file: Optional[str] = None) -> WptLogger:
    """
    Creates the run logger.

    The console shows what the flags ask for, while the log file (when given)
    always records everything down to DEBUG.

    Args:
        debug: Show debug output on the console.
        verbose: Show info output on the console.
        silent: Only show errors on the console.
        log_file: Optional path of the rotating log file.

    Returns:
        WptLogger: The logger to inject into the run.
    """
    utility = create_logging_utility(DEFAULT_RUN_UTILITY_NAME, log_file, logging.DEBUG,
                                     console_level=console_level_for(debug, verbose, silent))
    return WptLogger(utility.get_logger())

import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

from textile_planning.config import config

class Logger:
    """Logging manager for the Textile Planning System.

    Every named logger writes to its own rotating file ``<directory>/<name>.log``
    and, when ``LOGGING.console_output`` is set, to the console.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._settings = config.log_config
        self._directory = Path(self._settings['directory'])
        self._directory.mkdir(parents=True, exist_ok=True)

        self._setup_root()
        self._app_logger = self.get_logger('app')
        self._initialized = True

    @property
    def level(self):
        return getattr(logging, self._settings['level'].upper(), logging.INFO)

    def _formatter(self):
        return logging.Formatter(self._settings['format'])

    def _console_handler(self):
        handler = logging.StreamHandler()
        handler.setFormatter(self._formatter())
        return handler

    def _file_handler(self, name):
        handler = logging.handlers.RotatingFileHandler(
            self._directory / f"{name}.log",
            maxBytes=self._settings['max_size_mb'] * 1024 * 1024,
            backupCount=self._settings['backup_count']
        )
        handler.setFormatter(self._formatter())
        return handler

    def _setup_root(self):
        """Module loggers (``logging.getLogger(__name__)``) end up here."""
        root = logging.getLogger()
        root.setLevel(self.level)
        root.handlers.clear()

        if self._settings['console_output']:
            root.addHandler(self._console_handler())

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Name of the logger, also used as the log file name

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        named = logging.getLogger(name)
        named.setLevel(self.level)
        named.handlers.clear()
        named.addHandler(self._file_handler(name))
        if self._settings['console_output']:
            named.addHandler(self._console_handler())

        # Has its own handlers; the root would print everything twice
        named.propagate = False

        self._loggers[name] = named
        return named

    @property
    def app_logger(self):
        return self._app_logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception and the current stack trace to ``logger_name``."""
        target = self.get_logger(logger_name)
        target.error(f"{message}: {exception}" if message else str(exception))
        target.error(traceback.format_exc())

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of a batch process.

        Returns:
            Dictionary to hand back to ``batch_end_log``
        """
        batch_logger = self.get_logger('batch')
        batch_logger.info(f"Starting batch process: {process_name}")
        if additional_info:
            batch_logger.info(f"Process info: {additional_info}")

        return {
            'process_name': process_name,
            'start_time': datetime.now(),
            'additional_info': additional_info
        }

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Log the end of a batch process with its duration and results."""
        batch_logger = self.get_logger('batch')
        process_name = log_info.get('process_name', 'Unknown')
        duration = datetime.now() - log_info.get('start_time', datetime.now())

        if success:
            batch_logger.info(f"Completed batch process: {process_name} in {duration}")
        else:
            batch_logger.error(f"Failed batch process: {process_name} after {duration}")

        if result_info:
            batch_logger.info(f"Process results: {result_info}")

    def planning_log(self, purchase_name, line_name, result):
        """Record the outcome of a single planning attempt.

        Args:
            purchase_name: Display name of the purchase order
            line_name: Production line name
            result: PlanningResult returned by the scheduler
        """
        planning_logger = self.get_logger('planning')

        if result.success:
            planning_logger.info(
                f"Planned {purchase_name} on {line_name}: "
                f"{result.total_quantity} units over {len(result.days)} day(s)"
            )
        else:
            planning_logger.warning(
                f"Planning failed for {purchase_name} on {line_name}: {result.message}"
            )

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

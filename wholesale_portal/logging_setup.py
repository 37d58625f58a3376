import logging
import logging.handlers
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from wholesale_portal.config import config


class Logger:
    """Logging manager for the Wholesale Portal.

    Every named logger writes to ``<directory>/<name>.log`` (rotated by size)
    and to the console, depending on the LOGGING section.
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
        self._formatter = logging.Formatter(self._settings['format'])
        self._level = getattr(logging, self._settings['level'].upper(), logging.INFO)

        if self._settings['file_output']:
            self._directory.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(self._level)
        self._attach(root_logger, None)

        self._app_logger = self.get_logger('app')
        self._initialized = True

    def _attach(self, target, file_name):
        """Replace the handlers of ``target`` with the configured ones."""
        for handler in target.handlers[:]:
            target.removeHandler(handler)

        handlers = []
        if file_name and self._settings['file_output']:
            handlers.append(logging.handlers.RotatingFileHandler(
                self._directory / f"{file_name}.log",
                maxBytes=self._settings['max_size_mb'] * 1024 * 1024,
                backupCount=self._settings['backup_count']
            ))
        if self._settings['console_output']:
            handlers.append(logging.StreamHandler())

        for handler in handlers:
            handler.setFormatter(self._formatter)
            target.addHandler(handler)

    def get_logger(self, name):
        """Get (and on first use configure) a named logger.

        Args:
            name: Logger name, also used as the log file name

        Returns:
            logging.Logger
        """
        if name not in self._loggers:
            named_logger = logging.getLogger(name)
            named_logger.setLevel(self._level)
            self._attach(named_logger, name)
            # Own handlers only, the root logger would print a second time
            named_logger.propagate = False
            self._loggers[name] = named_logger
        return self._loggers[name]

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception together with its traceback."""
        text = f"{message}: {exception}" if message else str(exception)
        self.get_logger(logger_name).error(text, exc_info=exception)

    @property
    def app_logger(self):
        return self._app_logger

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of a batch process.

        Returns:
            Dictionary to hand back to batch_end_log
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

    @contextmanager
    def batch_run(self, process_name, additional_info=None):
        """Wrap a batch process in start/end logging.

        Yields a dict the caller fills with results. An exception is logged as
        a failed run and re-raised.
        """
        log_info = self.batch_start_log(process_name, additional_info)
        results = {}
        try:
            yield results
        except Exception as e:
            self.batch_end_log(log_info, success=False, result_info={'error': str(e)})
            raise
        self.batch_end_log(log_info, success=True, result_info=results)


# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)

"""Logging infrastructure with run context."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class RunContextFilter(logging.Filter):
    """Add run context to log records."""

    def __init__(self):
        super().__init__()
        self.run_id: Optional[str] = None

    def filter(self, record):
        """Add run_id to record."""
        record.run_id = self.run_id or "system"
        return True


class InvoiceFlowLogger:
    """Centralized logging manager.

    Starts with a console handler only; ``attach_file`` adds the rotating
    log file once the settings (and therefore the log directory) are known.
    """

    def __init__(self, log_level: str = "INFO"):
        self.run_filter = RunContextFilter()
        self.log_file: Optional[Path] = None

        self.logger = logging.getLogger("invoiceflow")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        # Remove existing handlers
        self.logger.handlers.clear()

        self.formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [run:%(run_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(self.formatter)
        console_handler.addFilter(self.run_filter)
        self.console_handler = console_handler
        self.logger.addHandler(console_handler)

    def attach_file(
        self,
        logs_dir: Path,
        log_level: str = "INFO",
        max_file_size_mb: int = 10,
        backup_count: int = 30
    ) -> Path:
        """Add (or replace) the rotating file handler under ``logs_dir``."""
        logs_dir = Path(logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)

        for handler in list(self.logger.handlers):
            if isinstance(handler, RotatingFileHandler):
                self.logger.removeHandler(handler)
                handler.close()

        self.log_file = logs_dir / "invoiceflow.log"
        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(self.formatter)
        file_handler.addFilter(self.run_filter)
        self.logger.addHandler(file_handler)

        self.console_handler.setLevel(getattr(logging, log_level.upper()))
        return self.log_file

    def set_run_context(self, run_id: Optional[str]):
        """Set current run context for logging."""
        self.run_filter.run_id = run_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[InvoiceFlowLogger] = None


def _instance() -> InvoiceFlowLogger:
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = InvoiceFlowLogger()
    return _logger_instance


def get_logger() -> logging.Logger:
    """Get or create global logger instance."""
    return _instance().get_logger()


def configure_file_logging(
    logs_dir: Path,
    log_level: str = "INFO",
    max_file_size_mb: int = 10,
    backup_count: int = 30
) -> Path:
    """Route log output to a rotating file in ``logs_dir`` as well as stdout."""
    return _instance().attach_file(logs_dir, log_level, max_file_size_mb, backup_count)


def set_run_context(run_id: Optional[str]):
    """Set run context for logging."""
    _instance().set_run_context(run_id)

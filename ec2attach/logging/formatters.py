"""Logging formatters for CLI output."""

import logging


class StreamFormatter(logging.Formatter):
    """Logging formatter that prepends the level for warnings and errors."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with a level prefix when it is not informational.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional level prefix
        """
        msg = super().format(record)

        if record.levelno >= logging.ERROR:
            return f"error: {msg}"
        elif record.levelno >= logging.WARNING:
            return f"warning: {msg}"

        return msg

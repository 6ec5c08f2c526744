"""Logging filters that route records to stdout or stderr."""

import logging


class StreamRoutingFilter(logging.Filter):
    """Pass only records destined for one output stream.

    Records choose a stream with ``extra={"stream": "stdout"}``. Records
    without a stream go to stderr, so stdout stays reserved for command
    results.

    Parameters
    ----------
    stream : str
        Stream this filter admits, 'stdout' or 'stderr'
    """

    def __init__(self, stream: str) -> None:
        super().__init__()
        self.stream = stream

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True if the record belongs to this filter's stream."""
        return getattr(record, "stream", "stderr") == self.stream

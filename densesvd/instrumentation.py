import logging
import os
import time
from collections import OrderedDict
from contextlib import contextmanager

from densesvd.exceptions import MatrixIOError
from densesvd.utils import timed

RUN_LOGGER = "densesvd.runlog"

run_logger = logging.getLogger(RUN_LOGGER)


def setup_logging(level=logging.INFO):
    """Set up console logging"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class AppendFileHandler(logging.Handler):
    """Append each record to a file, opening and closing it per record.

    No handle is held between records, so a crash loses no line that was
    already logged.
    """

    def __init__(self, filename, encoding="utf-8"):
        super().__init__()
        self.baseFilename = os.fspath(filename)
        self.encoding = encoding

    def emit(self, record):
        try:
            msg = self.format(record)
            with open(self.baseFilename, "a", encoding=self.encoding) as fh:
                fh.write(msg + "\n")
        except Exception:
            self.handleError(record)


@contextmanager
def run_log(log_path):
    """Attach the run log file to `run_logger` for the duration of the block"""
    try:
        with open(log_path, "a", encoding="utf-8"):
            pass
    except OSError as e:
        raise MatrixIOError(f"cannot open '{log_path}' for writing: {e.strerror}") from e

    handler = AppendFileHandler(log_path)
    handler.setFormatter(logging.Formatter("%(message)s"))
    run_logger.addHandler(handler)
    run_logger.setLevel(logging.INFO)
    try:
        yield run_logger
    finally:
        run_logger.removeHandler(handler)
        handler.close()


class PhaseTimer:
    """Monotonic per-phase durations, one run-log line per completed phase"""

    def __init__(self, log=run_logger):
        self.log = log
        self.durations = OrderedDict()
        self.start = time.perf_counter()

    @contextmanager
    def phase(self, name, message):
        with timed() as elapsed:
            yield
        self.durations[name] = elapsed["seconds"]
        self.log.info(message, elapsed["seconds"])

    def total(self):
        return time.perf_counter() - self.start

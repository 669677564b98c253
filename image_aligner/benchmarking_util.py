import contextlib
import logging
import time
from typing import Generator

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def log_timing(
    span_name: str, enabled: bool = True, level: int = logging.INFO
) -> Generator[None, None, None]:
    """Log the wall time spent in this context as ``<span_name>=<seconds>``.

    Nothing is logged when ``enabled`` is false or when the body raises.
    """
    start_time = time.perf_counter()
    yield
    total_time = time.perf_counter() - start_time
    if enabled:
        logger.log(level, f"{span_name}={total_time:f}")

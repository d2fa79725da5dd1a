"""Report output sinks."""

from __future__ import annotations

import logging
import sys
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

WRITE_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 0.1


def write_report(
    content: str,
    output: Path | None = None,
    *,
    attempts: int = WRITE_ATTEMPTS,
    delay: float = RETRY_DELAY_SECONDS,
) -> None:
    """Write a fully rendered report to ``output`` or stdout.

    The report is rendered before this is called, so a run either emits the
    whole report or nothing. File writes are retried on transient OS errors;
    the last error propagates.
    """
    if output is None:
        sys.stdout.write(content)
        sys.stdout.flush()
        return

    for attempt in range(1, attempts + 1):
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(content, encoding="utf-8")
            return
        except OSError as exc:
            if attempt == attempts:
                raise
            logger.debug(
                "Retrying write of %s (attempt %d/%d): %s",
                output,
                attempt,
                attempts,
                exc,
            )
            time.sleep(delay * attempt)


__all__ = ["write_report"]

"""
warningLogger
=============

Process-wide, append-only record of the non-fatal warnings produced while
evaluating a parameter point (clamped exponentials, discarded starting points,
unknown tunneling strategies, ...).

Messages are also forwarded to the standard :mod:`logging` machinery at
WARNING level, so that an application which configures logging sees them as
they happen, while the record itself can be read back at the end of a run.
"""

import logging
from typing import List

log = logging.getLogger(__name__)

__all__ = ["WarningLogger", "logWarning", "warningMessages", "clearWarnings"]


class WarningLogger:
    """
    Append-only list of warning strings.

    :meth:`logWarning` never raises: a message that cannot be converted to a
    string is recorded through its ``repr``.
    """

    def __init__(self) -> None:
        self._messages: List[str] = []

    def logWarning(self, message) -> None:
        try:
            text = str(message)
        except Exception:
            text = repr(message)
        self._messages.append(text)
        log.warning(text)

    def messages(self) -> List[str]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


# The sink shared by the whole process.
_processWarnings = WarningLogger()


def logWarning(message) -> None:
    """Record `message` in the process-wide warning sink."""
    _processWarnings.logWarning(message)


def warningMessages() -> List[str]:
    """Return a copy of every warning recorded since the last clear."""
    return _processWarnings.messages()


def clearWarnings() -> None:
    """Empty the process-wide warning sink (e.g. between parameter points)."""
    _processWarnings.clear()

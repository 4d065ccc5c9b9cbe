"""User interaction capability.

The engine asks for confirmation at two points: before triggering a
challenge (the user must have published the proof material) and when
a new account must accept the terms of service.  Both go through
:meth:`UserInteraction.confirm`; a ``False`` answer is always turned
into a failure by the caller, never a silent skip.
"""

from __future__ import annotations

import abc
import logging
import sys
from typing import TextIO

log = logging.getLogger(__name__)

_YES = frozenset({"y", "yes"})


class UserInteraction(abc.ABC):
    """Synchronous confirm/decline capability."""

    @abc.abstractmethod
    def confirm(self, title: str, message: str) -> bool:
        """Present *message* and return ``True`` if the user accepts."""


class ConsoleInteraction(UserInteraction):
    """Prompt on the terminal; anything other than ``y``/``yes`` declines.

    End of input (Ctrl-D, closed stdin) counts as a decline.
    """

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self._in = stdin or sys.stdin
        self._out = stdout or sys.stdout

    def confirm(self, title: str, message: str) -> bool:
        self._out.write(f"\n== {title} ==\n\n{message}\n\nProceed? [y/N] ")
        self._out.flush()
        answer = self._in.readline()
        if not answer:
            log.debug("No answer on stdin for '%s', treating as decline", title)
            return False
        return answer.strip().lower() in _YES


class AutoConfirmInteraction(UserInteraction):
    """Accept every prompt, logging the instructions instead.

    For unattended runs where the proof material is published
    automatically (webroot, DNS hooks).
    """

    def confirm(self, title: str, message: str) -> bool:
        log.info("%s (auto-confirmed)\n%s", title, message)
        return True

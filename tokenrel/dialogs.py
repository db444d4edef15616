"""
Dialog presenters: how the engine talks to a human.

The engine only ever calls notify, confirm and prompt. confirm and
prompt may return their answer directly or as an awaitable; callers
resolve either form with `resolve_answer`.
"""

from __future__ import annotations

import inspect
import logging
import sys
from typing import Any, Awaitable, Callable, Optional, Protocol, TextIO, Union

logger = logging.getLogger(__name__)


class DialogPresenter(Protocol):
    """Narrow interface to whatever presents messages and questions."""

    def notify(self, text: str) -> None: ...

    def confirm(self, text: str) -> Union[bool, Awaitable[bool]]: ...

    def prompt(
        self, text: str, default: str = ""
    ) -> Union[Optional[str], Awaitable[Optional[str]]]: ...


async def resolve_answer(answer: Any) -> Any:
    """Await an answer if the presenter handed back an awaitable."""
    if inspect.isawaitable(answer):
        return await answer
    return answer


class SilentDialogPresenter:
    """
    Presenter for headless use.

    Notifications go to the log, confirmations are declined and
    prompts are cancelled, so no multi-step flow ever proceeds
    without an explicit answer.
    """

    def __init__(self):
        self.notifications: list[str] = []

    def notify(self, text: str) -> None:
        self.notifications.append(text)
        logger.info("notify: %s", text)

    def confirm(self, text: str) -> bool:
        logger.debug("confirm declined: %s", text)
        return False

    def prompt(self, text: str, default: str = "") -> Optional[str]:
        logger.debug("prompt cancelled: %s", text)
        return None


class ConsoleDialogPresenter:
    """
    Presenter backed by a terminal.

    With assume_yes, confirmations are accepted and prompts take their
    default without reading input.
    """

    def __init__(
        self,
        assume_yes: bool = False,
        stdout: Optional[TextIO] = None,
        read_line: Optional[Callable[[str], str]] = None,
    ):
        self.assume_yes = assume_yes
        self.stdout = stdout or sys.stdout
        self.read_line = read_line or input

    def notify(self, text: str) -> None:
        print(text, file=self.stdout)

    def confirm(self, text: str) -> bool:
        if self.assume_yes:
            print(f"{text} [y/N] y", file=self.stdout)
            return True
        try:
            answer = self.read_line(f"{text} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")

    def prompt(self, text: str, default: str = "") -> Optional[str]:
        if self.assume_yes:
            return default
        suffix = f" [{default}]" if default else ""
        try:
            answer = self.read_line(f"{text}{suffix}: ")
        except EOFError:
            return None
        return answer if answer.strip() else default

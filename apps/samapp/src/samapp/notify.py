from __future__ import annotations

import sys
from typing import Protocol, TextIO

CHECK_LOGS_MESSAGE = "See the log output for more details."
GET_HELP_ACTION = "Get Help..."


class Notifier(Protocol):
    async def show_error(self, message: str) -> None: ...

    async def show_warning(self, message: str, *actions: str) -> str | None: ...

    async def show_info(self, message: str, *actions: str) -> str | None: ...

    async def open_external(self, url: str) -> None: ...


class ConsoleNotifier:
    """Writes notifications to a stream; with `choose_first_action` the first action is taken."""

    def __init__(self, stream: TextIO | None = None, *, choose_first_action: bool = True) -> None:
        self._stream = stream
        self._choose_first_action = choose_first_action

    def _write(self, line: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        print(line, file=stream, flush=True)

    def _choose(self, actions: tuple[str, ...]) -> str | None:
        if actions and self._choose_first_action:
            return actions[0]
        return None

    async def show_error(self, message: str) -> None:
        self._write(f"[error] {message}")

    async def show_warning(self, message: str, *actions: str) -> str | None:
        self._write(f"[warning] {message}")
        return self._choose(actions)

    async def show_info(self, message: str, *actions: str) -> str | None:
        self._write(f"[info] {message}")
        return self._choose(actions)

    async def open_external(self, url: str) -> None:
        self._write(f"[link] {url}")

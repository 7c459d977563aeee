"""Small helper for controlling ANSI terminal output and SGR mouse input."""

from __future__ import annotations

import os
import select
import shutil
import signal
import sys
import termios
import tty
from dataclasses import dataclass
from types import FrameType
from typing import Dict, List, Optional, Tuple

TermiosAttr = List[int | List[bytes | int]]

LEFT_DRAG_EVENT = 32  # may differ on XTerm or GTK based terminals
RIGHT_DRAG_EVENT = 34

_CLEANUP_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGTERM", "SIGHUP", "SIGQUIT")
    if hasattr(signal, name)
)


@dataclass(frozen=True, slots=True)
class MouseEvent:
    """A decoded SGR (1006) mouse report. ``col`` and ``row`` are 1-based."""

    button: int
    col: int
    row: int
    released: bool


def parse_sgr_mouse(sequence: str) -> Optional[MouseEvent]:
    """Decode ``ESC [ < button ; col ; row (M|m)`` into a :class:`MouseEvent`."""

    prefix = "\x1b[<"
    if not sequence.startswith(prefix) or len(sequence) <= len(prefix):
        return None
    terminator = sequence[-1]
    if terminator not in "Mm":
        return None

    fields = sequence[len(prefix):-1].split(";")
    if len(fields) != 3:
        return None
    try:
        button, col, row = (int(field) for field in fields)
    except ValueError:
        return None
    return MouseEvent(button, col, row, terminator == "m")


class TerminalController:
    """Context manager that prepares the terminal for mouse-driven animation."""

    _ENABLE_MOUSE = "\033[?1003h\033[?1006h"
    _DISABLE_MOUSE = "\033[?1003l\033[?1006l"

    def __init__(self, *, clear: bool = True, mouse: bool = True) -> None:
        self._clear = clear
        self._mouse = mouse
        self._screen_active = False
        self._mouse_enabled = False
        self._stdin_fd: Optional[int] = None
        self._termios_before: Optional[TermiosAttr] = None
        self._input_enabled = False
        self._previous_handlers: Dict[int, object] = {}

    @property
    def input_enabled(self) -> bool:
        return self._input_enabled

    def __enter__(self) -> "TerminalController":
        self._install_signal_handlers()

        sys.stdout.write("\033[?1049h")
        if self._clear:
            sys.stdout.write("\033[2J")
        sys.stdout.write("\033[H")
        sys.stdout.write("\033[?25l")
        self._screen_active = True

        if sys.stdin.isatty():
            fd = sys.stdin.fileno()
            self._stdin_fd = fd
            try:
                self._termios_before = termios.tcgetattr(fd)
                tty.setcbreak(fd)
                self._input_enabled = True
            except termios.error:
                self._termios_before = None
                self._stdin_fd = None
                self._input_enabled = False
        else:
            self._stdin_fd = None
            self._termios_before = None
            self._input_enabled = False

        if self._mouse and self._input_enabled:
            sys.stdout.write(self._ENABLE_MOUSE)
            self._mouse_enabled = True
        sys.stdout.flush()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()
        self._uninstall_signal_handlers()

    def restore(self) -> None:
        if self._mouse_enabled:
            sys.stdout.write(self._DISABLE_MOUSE)
            self._mouse_enabled = False

        if self._screen_active:
            sys.stdout.write("\033[0m")
            sys.stdout.write("\033[?25h")
            sys.stdout.write("\033[?1049l")
            self._screen_active = False
        sys.stdout.flush()

        if self._input_enabled and self._stdin_fd is not None and self._termios_before is not None:
            try:
                termios.tcsetattr(self._stdin_fd, termios.TCSAFLUSH, self._termios_before)
            except termios.error:
                pass
        self._input_enabled = False
        self._stdin_fd = None
        self._termios_before = None

    def draw(self, frame: str) -> None:
        sys.stdout.write("\033[H")
        sys.stdout.write(frame)
        sys.stdout.flush()

    def get_size(self) -> os.terminal_size:
        return shutil.get_terminal_size(fallback=(80, 24))

    def size_tuple(self) -> Tuple[int, int]:
        """Return ``(rows, columns)``."""
        size = self.get_size()
        return size.lines, size.columns

    def poll_mouse(self) -> List[MouseEvent]:
        if not self._input_enabled or self._stdin_fd is None:
            return []

        events: List[MouseEvent] = []
        try:
            while True:
                char = self._read_char()
                if char is None:
                    break

                if char == "\x03":
                    raise KeyboardInterrupt

                if char != "\x1b":
                    continue

                event = parse_sgr_mouse(self._read_escape_sequence())
                if event is not None:
                    events.append(event)
        except OSError:
            return events

        return events

    def _read_char(self) -> Optional[str]:
        if self._stdin_fd is None:
            return None
        readable, _, _ = select.select([self._stdin_fd], [], [], 0)
        if not readable:
            return None
        data = os.read(self._stdin_fd, 1)
        if not data:
            return None
        return data.decode("utf-8", errors="ignore")

    def _read_escape_sequence(self) -> str:
        sequence = "\x1b"
        # SGR reports are short; cap the read so garbage cannot stall a frame.
        while len(sequence) < 32:
            char = self._read_char()
            if char is None:
                break
            if not char:
                continue
            sequence += char
            if len(sequence) > 2 and (char.isalpha() or char == "~"):
                break
        return sequence

    # Signal handling --------------------------------------------------

    def _install_signal_handlers(self) -> None:
        for signum in _CLEANUP_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
            except (OSError, ValueError):
                # Not on the main thread, or not supported on this platform.
                continue

    def _uninstall_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            if handler is None:
                continue
            try:
                signal.signal(signum, handler)  # type: ignore[arg-type]
            except (OSError, ValueError):
                continue
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame: Optional[FrameType]) -> None:
        self.restore()
        signal.signal(signum, signal.SIG_DFL)
        os.kill(os.getpid(), signum)

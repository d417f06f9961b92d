"""Terminal output helpers and the interactive package selection menu."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Container, Mapping, Sequence
from typing import TextIO

from yippee.intrange import parse_number_menu

_RESET = "\x1b[0m"
_BOLD = "\x1b[1m"
_RED = "\x1b[31m"
_GREEN = "\x1b[32m"
_YELLOW = "\x1b[33m"
_BLUE = "\x1b[34m"
_MAGENTA = "\x1b[35m"
_CYAN = "\x1b[36m"
_HASH_COLOR_BASE = 31
_MASK64 = (1 << 64) - 1

_ARROW = "==>"
_SMALL_ARROW = " ->"
_OP_SYMBOL = "::"

_use_color = True


class UserAbort(Exception):
    """Raised when the user chooses to abort an operation."""

    def __init__(self, message: str = "aborting due to user") -> None:
        super().__init__(message)


def set_use_color(enabled: bool) -> None:
    """Turn coloured output on or off for every helper in this module."""
    global _use_color
    _use_color = bool(enabled)


def _stylize(code: str, text: str) -> str:
    if not _use_color:
        return text
    return f"{code}{text}{_RESET}"


def bold(text: str) -> str:
    return _stylize(_BOLD, text)


def red(text: str) -> str:
    return _stylize(_RED, text)


def green(text: str) -> str:
    return _stylize(_GREEN, text)


def yellow(text: str) -> str:
    return _stylize(_YELLOW, text)


def blue(text: str) -> str:
    return _stylize(_BLUE, text)


def magenta(text: str) -> str:
    return _stylize(_MAGENTA, text)


def cyan(text: str) -> str:
    return _stylize(_CYAN, text)


def color_hash(name: str) -> str:
    """Colour ``name`` with a colour chosen from a hash of its bytes."""
    if not _use_color:
        return name
    value = 5381
    for byte in name.encode():
        value = (byte + (value << 5) + value) & _MASK64
    return f"\x1b[{value % 6 + _HASH_COLOR_BASE}m{name}{_RESET}"


class Logger:
    """Writes user-facing messages and reads answers from the user."""

    def __init__(
        self,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        stdin: TextIO | None = None,
        debug: bool = False,
        name: str = "",
    ) -> None:
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.stdin = stdin if stdin is not None else sys.stdin
        self.debug_enabled = debug
        self.name = name

    def child(self, name: str) -> Logger:
        """Return a logger sharing the streams under a nested name."""
        return Logger(self.stdout, self.stderr, self.stdin, self.debug_enabled, f"{self.name}.{name}")

    @staticmethod
    def _write(stream: TextIO, text: str) -> None:
        stream.write(text)
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()

    def print(self, *args: object) -> None:
        self._write(self.stdout, "".join(str(arg) for arg in args))

    def println(self, *args: object) -> None:
        self._write(self.stdout, " ".join(str(arg) for arg in args) + "\n")

    def info(self, *args: object) -> None:
        self.println(bold(green(_ARROW)), *args)

    def warn(self, *args: object) -> None:
        self.println(bold(yellow(_SMALL_ARROW)), *args)

    def error(self, *args: object) -> None:
        parts = [bold(red(_SMALL_ARROW)), *(str(arg) for arg in args)]
        self._write(self.stderr, " ".join(parts) + "\n")

    def debug(self, *args: object) -> None:
        if self.debug_enabled:
            self.println(f"[DEBUG:{self.name}]", *args)

    def operation_info(self, *args: object) -> None:
        self.println(bold(blue(_OP_SYMBOL)), bold(" ".join(str(arg) for arg in args)))

    def get_input(self, default: str, no_confirm: bool) -> str:
        """Read one line from the user, or return ``default`` when it is set."""
        self._write(self.stdout, f"{bold(green(_ARROW))} >> ")
        if default or no_confirm:
            self.println(default)
            return default
        line = self.stdin.readline()
        if not line:
            raise EOFError("no input available")
        return line.rstrip("\r\n")

    def continue_task(self, question: str, default: bool, no_confirm: bool) -> bool:
        """Ask a yes/no question; an empty or unclear answer gives ``default``."""
        if no_confirm:
            return default
        postfix = " [Y/n] " if default else " [y/N] "
        self._write(self.stdout, f"{bold(blue(_OP_SYMBOL))} {bold(question)}{bold(postfix)}")
        words = self.stdin.readline().split()
        if not words:
            return default
        answer = words[0].lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        return default


def _path_exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


def pkgbuild_number_menu(
    logger: Logger,
    pkgbuild_dirs: Mapping[str, str],
    bases: Sequence[str],
    installed: Container[str],
) -> None:
    """Print the numbered list of package bases."""
    total = len(pkgbuild_dirs)
    output = []
    for position, base in enumerate(bases):
        line = magenta(f"{total - position:3d}") + f" {bold(base):<40}"
        if base in installed:
            line += bold(green(" (Installed)"))
        if _path_exists(pkgbuild_dirs.get(base, "")):
            line += bold(green(" (Build Files Exist)"))
        output.append(line + "\n")
    logger.print("".join(output))


def selection_menu(
    logger: Logger,
    pkgbuild_dirs: Mapping[str, str],
    bases: Sequence[str],
    installed: Container[str],
    message: str,
    no_confirm: bool,
    default_answer: str,
    skip: Callable[[str], bool] | None = None,
) -> list[str]:
    """Show the menu, ask the user and return the chosen bases in order.

    Raises :class:`UserAbort` if the user answers ``abort``.
    """
    pkgbuild_number_menu(logger, pkgbuild_dirs, bases, installed)

    logger.info(message)
    logger.info(f"{cyan('[N]one')} [A]ll [Ab]ort [I]nstalled [No]tInstalled or (1 2 3, 1-3, ^4)")

    answer = logger.get_input(default_answer, no_confirm)
    selection = parse_number_menu(answer)
    is_include = not selection.exclude and not selection.other_exclude
    other = selection.other_include

    if other & {"abort", "ab"}:
        raise UserAbort()
    if other & {"n", "none"}:
        return []

    want_installed = bool(other & {"i", "installed"})
    want_not_installed = bool(other & {"no", "notinstalled"})
    want_all = bool(other & {"a", "all"})

    selected: list[str] = []
    total = len(bases)
    for position, base in enumerate(bases):
        if skip is not None and skip(base):
            continue

        number = total - position
        is_installed = base in installed

        if not is_include and number in selection.exclude:
            continue
        if is_installed and want_installed:
            selected.append(base)
            continue
        if not is_installed and want_not_installed:
            selected.append(base)
            continue
        if want_all:
            selected.append(base)
            continue
        if is_include and (number in selection.include or base in other):
            selected.append(base)
        if not is_include and number not in selection.exclude and base not in selection.other_exclude:
            selected.append(base)

    return selected
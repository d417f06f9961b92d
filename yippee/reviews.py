"""Review steps run before building: cleaning, diffing and editing PKGBUILDs."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from collections.abc import Container, Mapping, Sequence
from typing import Protocol

from yippee.menu import Logger, UserAbort, bold, cyan, selection_menu
from yippee.multierror import MultiError

GIT_EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
GIT_DIFF_REF_NAME = "AUR_SEEN"

_COMMAND_ERRORS = (subprocess.SubprocessError, OSError)


class GitRunner(Protocol):
    def build(self, directory: str, *args: str) -> list[str]: ...

    def capture(self, cmd: Sequence[str]) -> tuple[str, str]: ...

    def show(self, cmd: Sequence[str]) -> None: ...


def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


def _color_enabled() -> bool:
    return bold("x") != "x"


def _stderr_of(exc: BaseException) -> str:
    return getattr(exc, "stderr", None) or ""


def clean_fn(
    logger: Logger,
    git: GitRunner,
    pkgbuild_dirs: Mapping[str, str],
    installed: Container[str],
    default_answer: str,
    no_confirm: bool,
) -> list[str]:
    """Ask which build directories to reset and clean, then clean them.

    Returns the cleaned package bases. A failing git command is re-raised.
    """
    if not pkgbuild_dirs:
        return []
    if not any(_exists(path) for path in pkgbuild_dirs.values()):
        return []

    def skip(base: str) -> bool:
        return not _exists(pkgbuild_dirs.get(base, ""))

    bases = list(pkgbuild_dirs)
    to_clean = selection_menu(
        logger, pkgbuild_dirs, bases, installed, "Packages to cleanBuild?", no_confirm, default_answer, skip
    )

    for number, base in enumerate(to_clean, start=1):
        directory = pkgbuild_dirs[base]
        logger.operation_info(f"Deleting ({number}/{len(to_clean)}): {cyan(directory)}")
        for args in (("reset", "--hard", "origin/HEAD"), ("clean", "-fdx")):
            try:
                git.show(git.build(directory, *args))
            except _COMMAND_ERRORS:
                logger.warn("Unable to clean:", directory)
                raise

    return to_clean


def _has_last_seen_ref(git: GitRunner, directory: str) -> bool:
    try:
        git.capture(git.build(directory, "rev-parse", "--quiet", "--verify", GIT_DIFF_REF_NAME))
    except _COMMAND_ERRORS:
        return False
    return True


def _last_seen_hash(git: GitRunner, directory: str) -> str:
    """The last reviewed commit, or the empty tree if nothing was reviewed."""
    if not _has_last_seen_ref(git, directory):
        return GIT_EMPTY_TREE
    try:
        stdout, _ = git.capture(git.build(directory, "rev-parse", GIT_DIFF_REF_NAME))
    except _COMMAND_ERRORS as exc:
        raise RuntimeError(f"{_stderr_of(exc)} {exc}") from exc
    return stdout.split("\n")[0]


def _has_diff(git: GitRunner, directory: str) -> bool:
    """True when the reviewed commit differs from the upstream head."""
    if not _has_last_seen_ref(git, directory):
        return True
    try:
        stdout, _ = git.capture(git.build(directory, "rev-parse", GIT_DIFF_REF_NAME, "HEAD@{upstream}"))
    except _COMMAND_ERRORS as exc:
        raise RuntimeError(f"{_stderr_of(exc)}{exc}") from exc
    lines = stdout.split("\n")
    return lines[0] != lines[1]


def show_pkgbuild_diffs(
    logger: Logger, git: GitRunner, pkgbuild_dirs: Mapping[str, str], bases: Sequence[str]
) -> None:
    """Show the unreviewed changes of each base; errors are raised together."""
    errors = MultiError()

    for base in bases:
        directory = pkgbuild_dirs[base]
        try:
            start = _last_seen_hash(git, directory)
            if start != GIT_EMPTY_TREE and not _has_diff(git, directory):
                logger.warn(f"{cyan(base)}: No changes -- skipping")
                continue
        except RuntimeError as exc:
            errors.add(exc)
            continue

        args = [
            "diff",
            f"{start}..HEAD@{{upstream}}",
            "--src-prefix",
            directory + "/",
            "--dst-prefix",
            directory + "/",
            "--",
            ".",
            ":(exclude).SRCINFO",
            "--color=always" if _color_enabled() else "--color=never",
        ]
        try:
            git.show(git.build(directory, *args))
        except _COMMAND_ERRORS:
            pass

    errors.raise_if_errors()


def update_pkgbuild_seen_ref(git: GitRunner, pkgbuild_dirs: Mapping[str, str], bases: Sequence[str]) -> None:
    """Mark the current head of each base as reviewed."""
    errors = MultiError()
    for base in bases:
        directory = pkgbuild_dirs[base]
        try:
            git.capture(git.build(directory, "update-ref", GIT_DIFF_REF_NAME, "HEAD"))
        except _COMMAND_ERRORS as exc:
            errors.add(RuntimeError(f"{_stderr_of(exc)} {exc}"))
    errors.raise_if_errors()


def diff_fn(
    logger: Logger,
    git: GitRunner,
    pkgbuild_dirs: Mapping[str, str],
    installed: Container[str],
    default_answer: str,
    no_confirm: bool,
) -> list[str]:
    """Ask which diffs to show, show them and record them as reviewed.

    Returns the reviewed bases; raises :class:`UserAbort` if the user declines.
    """
    if not pkgbuild_dirs:
        return []

    bases = list(pkgbuild_dirs)
    to_diff = selection_menu(
        logger, pkgbuild_dirs, bases, installed, "Diffs to show?", no_confirm, default_answer, None
    )
    if not to_diff:
        return []

    show_pkgbuild_diffs(logger, git, pkgbuild_dirs, to_diff)
    logger.println()

    if not logger.continue_task("Proceed with install?", True, False):
        raise UserAbort()

    update_pkgbuild_seen_ref(git, pkgbuild_dirs, to_diff)
    return to_diff


def _look_path(logger: Logger, name: str) -> str | None:
    found = shutil.which(name)
    if found is None:
        logger.error(f'exec: "{name}": executable file not found in $PATH')
    return found


def find_editor(logger: Logger, editor_config: str, editor_flags: str, no_confirm: bool) -> tuple[str, list[str]]:
    """Return the editor to use and its arguments.

    Tries the configured editor, then ``$VISUAL``, then ``$EDITOR``, and
    finally asks the user.
    """
    if editor_config:
        found = _look_path(logger, editor_config)
        if found is not None:
            return found, editor_flags.split()

    for variable in ("VISUAL", "EDITOR"):
        words = os.environ.get(variable, "").split()
        if words:
            found = _look_path(logger, words[0])
            if found is not None:
                return found, words[1:]

    logger.error("\n", f"{bold(cyan('$EDITOR'))} is not set")
    logger.warn(f"Add {bold(cyan('$EDITOR'))} or {bold(cyan('$VISUAL'))} to your environment variables")

    while True:
        logger.info("Edit PKGBUILD with?")
        try:
            answer = logger.get_input("", no_confirm)
        except EOFError as exc:
            logger.error(exc)
            raise
        words = shlex.split(answer) if answer.strip() else []
        if not words:
            if no_confirm:
                raise RuntimeError("no editor available")
            continue
        found = _look_path(logger, words[0])
        if found is not None:
            return found, words[1:]


def edit_pkgbuilds(
    logger: Logger,
    pkgbuild_dirs: Mapping[str, str],
    bases: Sequence[str],
    editor_config: str,
    editor_flags: str,
    no_confirm: bool,
) -> list[str]:
    """Open the PKGBUILDs of ``bases`` in the editor; returns the edited files."""
    files = [os.path.join(pkgbuild_dirs[base], "PKGBUILD") for base in bases]
    if not files:
        return files

    editor, args = find_editor(logger, editor_config, editor_flags, no_confirm)
    try:
        subprocess.run([editor, *args, *files], check=True)
    except _COMMAND_ERRORS as exc:
        raise RuntimeError(f"editor did not exit successfully, aborting: {exc}") from exc
    return files


def edit_fn(
    logger: Logger,
    pkgbuild_dirs: Mapping[str, str],
    installed: Container[str],
    default_answer: str,
    no_confirm: bool,
    editor_config: str,
    editor_flags: str,
) -> list[str]:
    """Ask which PKGBUILDs to edit and open them.

    Returns the edited bases; raises :class:`UserAbort` if the user declines.
    """
    if not pkgbuild_dirs:
        return []

    bases = list(pkgbuild_dirs)
    to_edit = selection_menu(
        logger, pkgbuild_dirs, bases, installed, "PKGBUILDs to edit?", no_confirm, default_answer, None
    )
    if not to_edit:
        return []

    edit_pkgbuilds(logger, pkgbuild_dirs, to_edit, editor_config, editor_flags, no_confirm)
    logger.println()

    if not logger.continue_task("Proceed with install?", True, False):
        raise UserAbort()

    return to_edit
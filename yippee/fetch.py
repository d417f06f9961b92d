"""Downloading PKGBUILDs and PKGBUILD repositories from the AUR and ABS."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import threading
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from yippee.menu import Logger, cyan
from yippee.multierror import MultiError
from yippee.targets import (
    AURPackage,
    AURQuery,
    RepoPackage,
    SearchBy,
    TargetMode,
    split_db_from_name,
)

MAX_CONCURRENT_FETCH = 20
ABS_PACKAGE_URL = "https://gitlab.archlinux.org/archlinux/packaging/packages"

HTTPGet = Callable[[str], "tuple[int, bytes]"]

# Repository names on the packaging Gitlab are derived from package names
# by these substitutions, applied in order.
_GITLAB_REPLACEMENTS = (
    (re.compile(r"([a-zA-Z0-9]+)\+([a-zA-Z]+)"), r"\1-\2"),
    (re.compile(r"\+"), "plus"),
    (re.compile(r"[^a-zA-Z0-9_\-.]"), "-"),
    (re.compile(r"[_\-]{2,}"), "-"),
    (re.compile(r"^tree\Z"), "unix-tree"),
)


class ABSPackageNotFound(Exception):
    """The package has no PKGBUILD in the official repositories."""

    def __init__(self, message: str = "package not found in repos") -> None:
        super().__init__(message)


class AURPackageNotFound(Exception):
    """The package was not found in the AUR."""

    def __init__(self, pkg_name: str) -> None:
        super().__init__(pkg_name)
        self.pkg_name = pkg_name

    def __str__(self) -> str:
        return f"package not found in AUR : {self.pkg_name}\n"


class PKGBUILDRepoError(Exception):
    """Cloning or updating a PKGBUILD repository failed."""

    def __init__(self, inner: BaseException, pkg_name: str, err_out: str = "") -> None:
        super().__init__(inner, pkg_name, err_out)
        self.inner = inner
        self.pkg_name = pkg_name
        self.err_out = err_out
        self.__cause__ = inner

    def __str__(self) -> str:
        return f"error fetching {self.pkg_name}: {self.err_out} \n\t context: {self.inner}\n"


class GitCommandRunner:
    """Builds and runs git commands with a fixed binary and global flags."""

    def __init__(self, git_bin: str = "git", git_flags: Sequence[str] = ()) -> None:
        self.git_bin = git_bin
        self.git_flags = list(git_flags)

    def build(self, directory: str, *args: str) -> list[str]:
        """Return the argument list for running git in ``directory``."""
        return [self.git_bin, *self.git_flags, "-C", directory, *args]

    def capture(self, cmd: Sequence[str]) -> tuple[str, str]:
        """Run ``cmd`` and return its stdout and stderr.

        Raises :class:`subprocess.CalledProcessError` on a non-zero exit.
        """
        completed = subprocess.run(list(cmd), capture_output=True, text=True, check=True)
        return completed.stdout.strip(), completed.stderr.strip()

    def show(self, cmd: Sequence[str]) -> None:
        """Run ``cmd`` attached to the terminal; raises on a non-zero exit."""
        subprocess.run(list(cmd), check=True)


class GitRunner(Protocol):
    def build(self, directory: str, *args: str) -> list[str]: ...

    def capture(self, cmd: Sequence[str]) -> tuple[str, str]: ...

    def show(self, cmd: Sequence[str]) -> None: ...


class AURClient(Protocol):
    def get(self, query: AURQuery) -> list[AURPackage]: ...


class DBSearcher(Protocol):
    def sync_package(self, name: str) -> RepoPackage | None: ...

    def sync_package_from_db(self, name: str, db_name: str) -> RepoPackage | None: ...


def _default_http_get(url: str) -> tuple[int, bytes]:
    try:
        with urllib.request.urlopen(url) as response:
            return response.status, response.read()
    except urllib.error.HTTPError as exc:
        return exc.code, b""


def convert_pkg_name_for_url(pkg_name: str) -> str:
    """Turn a package name into its repository name on the packaging Gitlab."""
    for pattern, replacement in _GITLAB_REPLACEMENTS:
        pkg_name = pattern.sub(replacement, pkg_name)
    return pkg_name


def pkgbuild_url(pkg_name: str) -> str:
    """URL of the raw PKGBUILD of an official package."""
    return f"{ABS_PACKAGE_URL}/{convert_pkg_name_for_url(pkg_name)}/-/raw/main/PKGBUILD"


def repo_url(pkg_name: str) -> str:
    """URL of the git repository of an official package."""
    return f"{ABS_PACKAGE_URL}/{convert_pkg_name_for_url(pkg_name)}.git"


def abs_pkgbuild(http_get: HTTPGet | None, db_name: str, pkg_name: str) -> bytes:
    """Download the PKGBUILD of an official package.

    Raises :class:`ABSPackageNotFound` unless the server answers 200.
    """
    status, body = (http_get or _default_http_get)(pkgbuild_url(pkg_name))
    if status != 200:
        raise ABSPackageNotFound()
    return body


def aur_pkgbuild(http_get: HTTPGet | None, pkg_name: str, aur_url: str) -> bytes:
    """Download the PKGBUILD of an AUR package.

    Raises :class:`AURPackageNotFound` unless the server answers 200.
    """
    query = urllib.parse.urlencode({"h": pkg_name})
    status, body = (http_get or _default_http_get)(f"{aur_url}/cgit/aur.git/plain/PKGBUILD?{query}")
    if status != 200:
        raise AURPackageNotFound(pkg_name)
    return body


def _remove_path(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def _stderr_of(exc: BaseException) -> str:
    return getattr(exc, "stderr", None) or ""


def download_git_repo(
    git: GitRunner, pkg_url: str, pkg_name: str, dest: str, force: bool, *args: str
) -> bool:
    """Clone ``pkg_url`` into ``dest/pkg_name`` or pull it if already cloned.

    Returns True for a new clone and False for an update. With ``force`` an
    existing directory is removed and cloned again.
    """
    final_dir = os.path.join(dest, pkg_name)
    git_dir = os.path.join(final_dir, ".git")

    try:
        os.stat(git_dir)
    except FileNotFoundError:
        exists = False
    except OSError as exc:
        raise PKGBUILDRepoError(exc, pkg_name, f"error reading {git_dir}") from exc
    else:
        exists = True

    if not exists or force:
        if force and os.path.lexists(final_dir):
            try:
                _remove_path(final_dir)
            except OSError as exc:
                raise PKGBUILDRepoError(exc, pkg_name, "") from exc

        cmd = git.build(dest, "clone", "--no-progress", *args, pkg_url, pkg_name)
        try:
            git.capture(cmd)
        except (subprocess.SubprocessError, OSError) as exc:
            raise PKGBUILDRepoError(exc, pkg_name, _stderr_of(exc)) from exc
        return True

    cmd = git.build(final_dir, "pull", "--rebase", "--autostash")
    try:
        git.capture(cmd)
    except (subprocess.SubprocessError, OSError) as exc:
        raise PKGBUILDRepoError(exc, pkg_name, _stderr_of(exc)) from exc
    return False


def abs_pkgbuild_repo(git: GitRunner, db_name: str, pkg_name: str, dest: str, force: bool) -> bool:
    """Clone or update the repository of an official package."""
    return download_git_repo(git, repo_url(pkg_name), pkg_name, dest, force, "--single-branch")


def aur_pkgbuild_repo(git: GitRunner, aur_url: str, pkg_name: str, dest: str, force: bool) -> bool:
    """Clone or update the repository of an AUR package."""
    return download_git_repo(git, f"{aur_url}/{pkg_name}.git", pkg_name, dest, force)


def _raise_with_results(errors: MultiError, results: dict) -> None:
    # Callers may still want what succeeded, so it travels with the error.
    errors.results = results
    errors.raise_if_errors()


def aur_pkgbuild_repos(
    git: GitRunner,
    logger: Logger,
    targets: Sequence[str],
    aur_url: str,
    dest: str,
    force: bool,
) -> dict[str, bool]:
    """Clone or update many AUR repositories concurrently.

    Returns a map of target to "newly cloned". If any fail, a
    :class:`MultiError` is raised whose ``results`` hold the successes.
    """
    cloned: dict[str, bool] = {}
    errors = MultiError()
    lock = threading.Lock()
    total = len(targets)

    def work(target: str) -> None:
        try:
            new_clone = aur_pkgbuild_repo(git, aur_url, target, dest, force)
        except Exception as exc:  # noqa: BLE001 - collected and reported together
            with lock:
                progress = len(cloned)
            errors.add(exc)
            logger.operation_info(f"({progress}/{total}) Failed to download PKGBUILD: {cyan(target)}")
            return

        with lock:
            cloned[target] = new_clone
            progress = len(cloned)
        logger.operation_info(f"({progress}/{total}) Downloaded PKGBUILD: {cyan(target)}")

    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_FETCH) as pool:
        list(pool.map(work, targets))

    _raise_with_results(errors, cloned)
    return cloned


def _url_name(pkg: RepoPackage) -> str:
    return pkg.base or pkg.name


def _usable_name(
    db_searcher: DBSearcher,
    aur_client: AURClient,
    logger: Logger,
    target: str,
    mode: TargetMode,
) -> tuple[str, str, bool, bool]:
    """Resolve a target to (db name, package name, is AUR, skip)."""
    db_name, name = split_db_from_name(target)

    if db_name != "aur" and mode.at_least_repo():
        if db_name:
            pkg = db_searcher.sync_package_from_db(name, db_name)
        else:
            pkg = db_searcher.sync_package(name)

        if pkg is not None:
            return pkg.db_name, _url_name(pkg), False, False

        if db_name:
            return db_name, name, True, True

    if mode == TargetMode.REPO:
        return db_name, name, True, True

    try:
        found = aur_client.get(AURQuery(needles=(name,), by=SearchBy.NAME, contains=False))
    except Exception as exc:  # noqa: BLE001 - a failed lookup skips the target
        logger.warn(exc)
        return db_name, name, True, True

    if not found:
        return db_name, name, True, True

    return "aur", name, True, False


def pkgbuilds(
    db_searcher: DBSearcher,
    aur_client: AURClient,
    http_get: HTTPGet | None,
    logger: Logger,
    targets: Sequence[str],
    aur_url: str,
    mode: TargetMode,
) -> dict[str, bytes]:
    """Download the PKGBUILDs of many targets concurrently.

    Targets that cannot be found are skipped. Failed downloads raise a
    :class:`MultiError` whose ``results`` hold the successes.
    """
    fetched: dict[str, bytes] = {}
    errors = MultiError()
    lock = threading.Lock()

    def work(target: str, db_name: str, pkg_name: str, is_aur: bool) -> None:
        try:
            if is_aur:
                body = aur_pkgbuild(http_get, pkg_name, aur_url)
            else:
                body = abs_pkgbuild(http_get, db_name, pkg_name)
        except Exception as exc:  # noqa: BLE001 - collected and reported together
            errors.add(exc)
            return
        with lock:
            fetched[target] = body

    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_FETCH) as pool:
        futures = []
        for target in targets:
            db_name, name, is_aur, skip = _usable_name(db_searcher, aur_client, logger, target, mode)
            if skip:
                continue
            futures.append(pool.submit(work, target, db_name, name, is_aur))
        for future in futures:
            future.result()

    _raise_with_results(errors, fetched)
    return fetched


def pkgbuild_repos(
    db_searcher: DBSearcher,
    aur_client: AURClient,
    git: GitRunner,
    logger: Logger,
    targets: Sequence[str],
    mode: TargetMode,
    aur_url: str,
    dest: str,
    force: bool,
) -> dict[str, bool]:
    """Clone or update the repositories of many targets from the AUR or ABS.

    Returns a map of target to "newly cloned". Failures raise a
    :class:`MultiError` whose ``results`` hold the successes.
    """
    cloned: dict[str, bool] = {}
    errors = MultiError()
    lock = threading.Lock()
    total = len(targets)

    def work(target: str, db_name: str, pkg_name: str, is_aur: bool) -> None:
        progress = 0
        try:
            if is_aur:
                new_clone = aur_pkgbuild_repo(git, aur_url, pkg_name, dest, force)
            else:
                new_clone = abs_pkgbuild_repo(git, db_name, pkg_name, dest, force)
        except Exception as exc:  # noqa: BLE001 - collected and reported together
            errors.add(exc)
        else:
            with lock:
                cloned[target] = new_clone
                progress = len(cloned)

        if is_aur:
            logger.operation_info(f"({progress}/{total}) Downloaded PKGBUILD: {cyan(pkg_name)}")
        else:
            logger.operation_info(f"({progress}/{total}) Downloaded PKGBUILD from ABS: {cyan(pkg_name)}")

    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_FETCH) as pool:
        futures = []
        for target in targets:
            db_name, name, is_aur, skip = _usable_name(db_searcher, aur_client, logger, target, mode)
            if skip:
                continue
            futures.append(pool.submit(work, target, db_name, name, is_aur))
        for future in futures:
            future.result()

    _raise_with_results(errors, cloned)
    return cloned
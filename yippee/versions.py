"""Version comparison, coloured version diffs and AUR warnings."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from yippee.menu import Logger, cyan, green, red
from yippee.targets import AURPackage, RepoPackage

_DEVEL_SUFFIXES = ("git", "svn", "hg", "bzr", "nightly", "insiders-bin")
_KEYWORDS = ("rc", "pre", "alpha", "beta")


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_alpha(char: str) -> bool:
    return "a" <= char <= "z" or "A" <= char <= "Z"


def _is_alnum(char: str) -> bool:
    return _is_digit(char) or _is_alpha(char)


def _starts_keyword(text: str, index: int) -> bool:
    """True when a keyword follows ``index`` and ``index`` does not sit inside a word."""
    if text[index].isalpha():
        return False
    for word in _KEYWORDS:
        start = index + 1
        if index < len(text) - len(word) and text[start : start + len(word)] == word:
            return True
    return False


def get_version_diff(old_version: str, new_version: str) -> tuple[str, str]:
    """Return both versions with their differing tails coloured red and green."""
    if old_version == new_version:
        return old_version + red(""), new_version + green("")

    diff_position = 0
    last_old = len(old_version) - 1
    last_new = len(new_version) - 1

    for index, char in enumerate(old_version):
        is_special = not (char.isalpha() or char.isnumeric())

        if index >= len(new_version) or char != new_version[index]:
            if is_special:
                diff_position = index
            break

        at_end = index in (last_old, last_new)
        if (
            is_special
            or (at_end and (len(old_version) != len(new_version) or old_version[index] == new_version[index]))
            or _starts_keyword(old_version, index)
        ):
            diff_position = index + 1

    same = old_version[:diff_position]
    return same + red(old_version[diff_position:]), same + green(new_version[diff_position:])


def _rpmvercmp(a: str, b: str) -> int:
    if a == b:
        return 0

    i = j = 0
    end1 = end2 = 0
    len_a, len_b = len(a), len(b)

    while i < len_a and j < len_b:
        while i < len_a and not _is_alnum(a[i]):
            i += 1
        while j < len_b and not _is_alnum(b[j]):
            j += 1
        if i >= len_a or j >= len_b:
            break

        if (i - end1) != (j - end2):
            return -1 if (i - end1) < (j - end2) else 1

        end1, end2 = i, j
        is_num = _is_digit(a[end1])
        belongs = _is_digit if is_num else _is_alpha
        while end1 < len_a and belongs(a[end1]):
            end1 += 1
        while end2 < len_b and belongs(b[end2]):
            end2 += 1

        seg1, seg2 = a[i:end1], b[j:end2]
        if not seg1:
            return -1
        if not seg2:
            return 1 if is_num else -1

        if is_num:
            seg1 = seg1.lstrip("0")
            seg2 = seg2.lstrip("0")
            if len(seg1) != len(seg2):
                return 1 if len(seg1) > len(seg2) else -1

        if seg1 != seg2:
            return -1 if seg1 < seg2 else 1

        i, j = end1, end2

    if i >= len_a and j >= len_b:
        return 0
    if (i >= len_a and not _is_alpha(b[j])) or (i < len_a and _is_alpha(a[i])):
        return -1
    return 1


def _parse_evr(evr: str) -> tuple[str, str, str | None]:
    digits = 0
    while digits < len(evr) and _is_digit(evr[digits]):
        digits += 1
    rest = evr[digits:]

    release = None
    dash = rest.rfind("-")
    if dash != -1:
        release = rest[dash + 1 :]
        rest = rest[:dash]

    if rest.startswith(":"):
        return evr[:digits] or "0", rest[1:], release
    return "0", evr[:digits] + rest, release


def vercmp(a: str, b: str) -> int:
    """Compare two ``[epoch:]version[-release]`` strings; negative, zero or positive."""
    if a == b:
        return 0
    epoch1, version1, release1 = _parse_evr(a)
    epoch2, version2, release2 = _parse_evr(b)

    result = _rpmvercmp(epoch1, epoch2)
    if result == 0:
        result = _rpmvercmp(version1, version2)
        if result == 0 and release1 is not None and release2 is not None:
            result = _rpmvercmp(release1, release2)
    return result


def is_devel_name(name: str) -> bool:
    """True when the name marks a package built from a development source."""
    return any(name.endswith("-" + suffix) for suffix in _DEVEL_SUFFIXES) or "-always-" in name


def is_devel_package(pkg: RepoPackage) -> bool:
    """True when the package name or base marks a development package."""
    return is_devel_name(pkg.name) or is_devel_name(pkg.base)


def _split_debug(names: Iterable[str]) -> tuple[list[str], list[str]]:
    normal: list[str] = []
    debug: list[str] = []
    for name in names:
        (debug if name.endswith("-debug") else normal).append(name)
    return normal, debug


def _format_names(names: list[str]) -> str:
    return " " + cyan("  ".join(names))


class AURWarnings:
    """Collects problems found while comparing installed packages with the AUR."""

    def __init__(self, logger: Logger) -> None:
        self.orphans: list[str] = []
        self.out_of_date: list[str] = []
        self.missing: list[str] = []
        self.local_newer: list[str] = []
        self.log = logger

    def add_to_warnings(self, remote: Mapping[str, RepoPackage], aur_pkg: AURPackage) -> None:
        """Record warnings for one AUR package against the installed foreign packages."""
        name = aur_pkg.name
        pkg = remote.get(name)
        if pkg is None:
            return

        if not aur_pkg.maintainer and not pkg.ignored:
            self.orphans.append(name)

        if aur_pkg.out_of_date != 0 and not pkg.ignored:
            self.out_of_date.append(name)

        if not pkg.ignored and not is_devel_package(pkg) and vercmp(pkg.version, aur_pkg.version) > 0:
            left, right = get_version_diff(pkg.version, aur_pkg.version)
            self.local_newer.append(f"{cyan(name)}: local ({left}) is newer than AUR ({right})")

    def calculate_missing(
        self,
        remote_names: Iterable[str],
        remote: Mapping[str, RepoPackage],
        aur_data: Mapping[str, AURPackage],
    ) -> None:
        """Record installed foreign packages that the AUR does not know."""
        for name in remote_names:
            if name in aur_data or remote[name].ignored:
                continue
            if name.removesuffix("-debug") not in aur_data:
                self.missing.append(name)

    def print(self) -> None:
        """Write every collected warning to the logger."""
        normal_missing, debug_missing = _split_debug(self.missing)

        if normal_missing:
            self.log.warn("Packages not in AUR:", _format_names(normal_missing))
        if debug_missing:
            self.log.warn("Missing AUR Debug Packages:", _format_names(debug_missing))
        if self.orphans:
            self.log.warn("Orphan (unmaintained) AUR Packages:", _format_names(self.orphans))
        if self.out_of_date:
            self.log.warn("Flagged Out Of Date AUR Packages:", _format_names(self.out_of_date))
        for newer in self.local_newer:
            self.log.warn(newer)
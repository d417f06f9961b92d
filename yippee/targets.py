"""Target modes, package records and filtering of command-line targets."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from yippee.menu import Logger, cyan


class TargetMode(enum.IntEnum):
    """Which package sources an operation may use."""

    ANY = 0
    AUR = 1
    REPO = 2

    def at_least_aur(self) -> bool:
        """True when AUR packages are allowed."""
        return self in (TargetMode.ANY, TargetMode.AUR)

    def at_least_repo(self) -> bool:
        """True when sync repository packages are allowed."""
        return self in (TargetMode.ANY, TargetMode.REPO)


class SearchBy(enum.Enum):
    """Fields that an AUR query can search by."""

    NAME = "name"
    NAME_DESC = "name-desc"
    MAINTAINER = "maintainer"
    DEPENDS = "depends"
    MAKE_DEPENDS = "makedepends"
    OPT_DEPENDS = "optdepends"
    CHECK_DEPENDS = "checkdepends"
    NONE = ""
    PROVIDES = "provides"
    CONFLICTS = "conflicts"
    REPLACES = "replaces"
    KEYWORDS = "keywords"
    GROUPS = "groups"
    SUBMITTER = "submitter"
    CO_MAINTAINERS = "comaintainers"


_SEARCH_BY_NAMES = {
    "name": SearchBy.NAME,
    "maintainer": SearchBy.MAINTAINER,
    "submitter": SearchBy.SUBMITTER,
    "depends": SearchBy.DEPENDS,
    "makedepends": SearchBy.MAKE_DEPENDS,
    "optdepends": SearchBy.OPT_DEPENDS,
    "checkdepends": SearchBy.CHECK_DEPENDS,
    "provides": SearchBy.PROVIDES,
    "conflicts": SearchBy.CONFLICTS,
    "replaces": SearchBy.REPLACES,
    "groups": SearchBy.GROUPS,
    "keywords": SearchBy.KEYWORDS,
    "comaintainers": SearchBy.CO_MAINTAINERS,
}


def get_search_by(value: str) -> SearchBy:
    """Map a configuration value to a search field; unknown values search name and description."""
    return _SEARCH_BY_NAMES.get(value, SearchBy.NAME_DESC)


@dataclass(frozen=True)
class AURQuery:
    """A request for AUR package information."""

    needles: tuple[str, ...]
    by: SearchBy = SearchBy.NAME_DESC
    contains: bool = False


@dataclass
class AURPackage:
    """Information about a package in the AUR."""

    name: str = ""
    version: str = ""
    description: str = ""
    maintainer: str = ""
    num_votes: int = 0
    popularity: float = 0.0
    out_of_date: int = 0
    package_base: str = ""
    provides: list[str] = field(default_factory=list)


@dataclass
class RepoPackage:
    """A package from a sync or local database."""

    name: str
    version: str = ""
    description: str = ""
    db_name: str = ""
    base: str = ""
    size: int = 0
    isize: int = 0
    provides: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=list)
    ignored: bool = False


class AURSearchError(Exception):
    """It was not possible to search the AUR."""

    def __init__(self, inner: BaseException) -> None:
        super().__init__(inner)
        self.inner = inner

    def __str__(self) -> str:
        return f"Error during AUR search: {self.inner}\n"


class NoQueryError(Exception):
    """No query was executed."""

    def __str__(self) -> str:
        return "no query was executed"


def split_db_from_name(target: str) -> tuple[str, str]:
    """Split ``db/name`` into its parts; the database is empty when absent."""
    db_name, sep, name = target.partition("/")
    if not sep:
        return "", target
    return db_name, name


def remove_invalid_targets(logger: Logger, targets: list[str], mode: TargetMode) -> list[str]:
    """Drop targets whose database prefix the mode does not allow, warning about each."""
    filtered = []
    for target in targets:
        db_name, _ = split_db_from_name(target)

        if db_name == "aur" and not mode.at_least_aur():
            logger.warn(f"{cyan(target)}: can't use target with option --repo -- skipping")
            continue

        if db_name not in ("aur", "") and not mode.at_least_repo():
            logger.warn(f"{cyan(target)}: can't use target with option --aur -- skipping")
            continue

        filtered.append(target)
    return filtered
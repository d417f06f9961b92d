"""Searching the AUR and the sync databases and presenting ranked results."""

from __future__ import annotations

import enum
import unicodedata
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, Union

from yippee.intrange import IntRanges
from yippee.menu import Logger, bold, color_hash, cyan, green, magenta, red
from yippee.multierror import MultiError
from yippee.targets import (
    AURPackage,
    AURQuery,
    AURSearchError,
    RepoPackage,
    SearchBy,
    TargetMode,
    get_search_by,
    remove_invalid_targets,
)

SOURCE_AUR = "aur"
_MIN_VOTES = 30
_SIZE_UNITS = ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_FIXED_SOURCE_SCORES = {"core": 40.0, "extra": 30.0, "community": 20.0, "multilib": 10.0}
_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193

Package = Union[AURPackage, RepoPackage]


class SearchVerbosity(enum.IntEnum):
    """How search results are printed."""

    NUMBER_MENU = 0
    DETAILED = 1
    MINIMAL = 2


class AURClient(Protocol):
    """Anything that answers AUR queries; raises on failure."""

    def get(self, query: AURQuery) -> list[AURPackage]: ...


class DBExecutor(Protocol):
    """Access to the sync and local package databases."""

    def sync_packages(self, *names: str) -> list[RepoPackage]: ...

    def local_package(self, name: str) -> RepoPackage | None: ...

    def package_groups(self, pkg: RepoPackage) -> list[str]: ...


@dataclass
class _Result:
    source: str
    name: str
    description: str
    votes: int
    provides: list[str] = field(default_factory=list)


def hamming_similarity(a: str, b: str) -> float:
    """Case-insensitive Hamming similarity between 0 and 1.

    A difference in length counts as that many mismatches; two empty
    strings are identical.
    """
    first, second = a.lower(), b.lower()
    if len(first) > len(second):
        first, second = second, first
    longest = len(second)
    if longest == 0:
        return 1.0
    distance = longest - len(first)
    distance += sum(1 for x, y in zip(first, second) if x != y)
    return 1.0 - distance / longest


def human_size(size: int) -> str:
    """Format a byte count with binary units, e.g. ``1.5 KiB``."""
    value = float(size)
    for unit in _SIZE_UNITS:
        if value < 1024:
            return f"{value:.1f} {unit}B"
        value /= 1024
    return f"{size}B"


def _format_time(unix_time: int) -> str:
    return datetime.fromtimestamp(unix_time).strftime("%Y-%m-%d %H:%M")


def _fnv1a32(text: str) -> int:
    value = _FNV32_OFFSET
    for byte in text.encode():
        value ^= byte
        value = (value * _FNV32_PRIME) & 0xFFFFFFFF
    return value


def _has_symbol(text: str) -> bool:
    return any(unicodedata.category(char).startswith("S") for char in text)


def matches_search(pkg: AURPackage, terms: Sequence[str]) -> bool:
    """True when every term occurs in the package name or description.

    A single term always matches, and so does any term holding a symbol.
    """
    if len(terms) <= 1:
        return True

    name = pkg.name.lower()
    description = pkg.description.lower()
    for term in terms:
        if _has_symbol(term):
            return True
        needle = term.lower()
        if needle not in name and needle not in description:
            return False
    return True


class _Ranker:
    """Scores results against the search string, caching per name and source."""

    def __init__(self, search: str, separate_sources: bool) -> None:
        self.search = search
        self.separate_sources = separate_sources
        self._similarity: dict[str, float] = {}
        self._source_scores: dict[str, float] = {}

    def similarity(self, result: _Result) -> float:
        cached = self._similarity.get(result.name)
        if cached is not None:
            return cached

        if result.name.casefold() == self.search.casefold():
            return 1.0

        sim = hamming_similarity(result.name, self.search)
        for provided in result.provides:
            sim = max(sim, hamming_similarity(provided, self.search) * 0.80)

        description_sim = hamming_similarity(result.description, self.search)

        # Sync sources are slightly favoured by always having full popularity.
        popularity = 1.0
        if result.source == SOURCE_AUR:
            popularity = 1 - _MIN_VOTES / (_MIN_VOTES + result.votes)

        score = sim * 0.5 + description_sim * 0.2 + popularity * 0.3
        self._similarity[result.name] = score
        return score

    def source_score(self, source: str, score: float) -> float:
        if not self.separate_sources:
            return 0.0
        if score == 1.0:
            return 50.0
        if source == SOURCE_AUR:
            return 0.0
        if source in _FIXED_SOURCE_SCORES:
            return _FIXED_SOURCE_SCORES[source]

        cached = self._source_scores.get(source)
        if cached is None:
            cached = float(_fnv1a32(source) % 9 + 2)
            self._source_scores[source] = cached
        return cached

    def score(self, result: _Result) -> float:
        sim = self.similarity(result)
        return self.source_score(result.source, sim) + sim


def _name_key(name: str) -> list[tuple[str, str]]:
    return [(char.lower(), char) for char in name]


def _query_aur(
    aur_client: AURClient, terms: Sequence[str], search_by: str
) -> tuple[list[AURPackage], Exception | None]:
    """Query the AUR term by term and return the first successful answer."""
    by = get_search_by(search_by)
    errors = MultiError()
    for word in terms:
        try:
            return list(aur_client.get(AURQuery(needles=(word,), by=by, contains=True))), None
        except Exception as exc:  # noqa: BLE001 - every client failure is reported
            errors.add(exc)
    return [], errors if errors.errors else None


def _aur_search_string(pkg: AURPackage, db_executor: DBExecutor, single_line: bool) -> str:
    text = (
        bold(color_hash(SOURCE_AUR))
        + "/"
        + bold(pkg.name)
        + " "
        + cyan(pkg.version)
        + bold(f" (+{pkg.num_votes}")
        + " "
        + bold(f"{pkg.popularity:.2f}) ")
    )

    if not pkg.maintainer:
        text += bold(red("(Orphaned)")) + " "
    if pkg.out_of_date != 0:
        text += bold(red(f"(Out-of-date: {_format_time(pkg.out_of_date)})")) + " "

    text += _installed_marker(db_executor, pkg.name, pkg.version)
    text += "\t" if single_line else "\n    "
    return text + pkg.description


def _sync_search_string(pkg: RepoPackage, db_executor: DBExecutor, single_line: bool) -> str:
    text = (
        bold(color_hash(pkg.db_name))
        + "/"
        + bold(pkg.name)
        + " "
        + cyan(pkg.version)
        + bold(f" ({human_size(pkg.size)} {human_size(pkg.isize)}) ")
    )

    groups = db_executor.package_groups(pkg)
    if groups:
        text += "[" + " ".join(groups) + "] "

    text += _installed_marker(db_executor, pkg.name, pkg.version)
    text += "\t" if single_line else "\n    "
    return text + pkg.description


def _installed_marker(db_executor: DBExecutor, name: str, version: str) -> str:
    local = db_executor.local_package(name)
    if local is None:
        return ""
    if local.version != version:
        return bold(green(f"(Installed: {local.version})"))
    return bold(green("(Installed)"))


class SourceQueryBuilder:
    """Searches the AUR and the sync databases and keeps the ranked results."""

    def __init__(
        self,
        aur_client: AURClient,
        logger: Logger,
        sort_by: str = "",
        target_mode: TargetMode = TargetMode.ANY,
        search_by: str = "",
        bottom_up: bool = False,
        single_line_results: bool = False,
        separate_sources: bool = False,
    ) -> None:
        self.aur_client = aur_client
        self.logger = logger
        self.sort_by = sort_by
        self.target_mode = target_mode
        self.search_by = search_by
        self.bottom_up = bottom_up
        self.single_line_results = single_line_results
        self.separate_sources = separate_sources
        self._results: list[_Result] = []
        self._packages: dict[tuple[str, str], Package] = {}

    def execute(self, db_executor: DBExecutor, terms: Sequence[str]) -> None:
        """Run the search for ``terms`` and rank what was found."""
        terms = remove_invalid_targets(self.logger, list(terms), self.target_mode)
        ranker = _Ranker("".join(terms), self.separate_sources)
        found: list[_Result] = []
        aur_error: Exception | None = None

        if self.target_mode.at_least_aur():
            aur_results, aur_error = _query_aur(self.aur_client, terms, self.search_by)
            by = get_search_by(self.search_by)
            filter_by_terms = by in (SearchBy.NAME_DESC, SearchBy.NONE, SearchBy.NAME)
            for pkg in aur_results:
                if filter_by_terms and not matches_search(pkg, terms):
                    continue
                self._packages[(SOURCE_AUR, pkg.name)] = pkg
                found.append(
                    _Result(
                        source=SOURCE_AUR,
                        name=pkg.name,
                        description=pkg.description,
                        votes=pkg.num_votes,
                        provides=list(pkg.provides),
                    )
                )

        repo_results: list[RepoPackage] = []
        if self.target_mode.at_least_repo():
            repo_results = list(db_executor.sync_packages(*terms))
            for pkg in repo_results:
                self._packages[(pkg.db_name, pkg.name)] = pkg
                found.append(
                    _Result(
                        source=pkg.db_name,
                        name=pkg.name,
                        description=pkg.description,
                        votes=-1,
                        provides=list(pkg.provides),
                    )
                )

        self._results = self._sorted(found, ranker)

        if aur_error is not None:
            self.logger.error(AURSearchError(aur_error))
            if repo_results:
                self.logger.warn("Showing repo packages only")

    def _sorted(self, found: list[_Result], ranker: _Ranker) -> list[_Result]:
        descending = not self.bottom_up
        if self.sort_by == "name":
            if self.separate_sources:
                return sorted(found, key=lambda r: (r.source, _name_key(r.name)), reverse=descending)
            return sorted(found, key=lambda r: _name_key(r.name), reverse=descending)
        return sorted(found, key=ranker.score, reverse=descending)

    def results(self, db_executor: DBExecutor, verbosity: SearchVerbosity) -> None:
        """Print the ranked results in the requested style."""
        total = len(self._results)
        for position, result in enumerate(self._results):
            if verbosity == SearchVerbosity.MINIMAL:
                self.logger.println(result.name)
                continue

            text = ""
            if verbosity == SearchVerbosity.NUMBER_MENU:
                number = total - position if self.bottom_up else position + 1
                text += magenta(str(number)) + " "

            pkg = self._packages.get((result.source, result.name))
            if isinstance(pkg, AURPackage):
                text += _aur_search_string(pkg, db_executor, self.single_line_results)
            elif isinstance(pkg, RepoPackage):
                text += _sync_search_string(pkg, db_executor, self.single_line_results)

            self.logger.println(text)

    def __len__(self) -> int:
        return len(self._results)

    def get_targets(self, include: IntRanges, exclude: IntRanges, other_exclude: set[str]) -> list[str]:
        """Turn a number-menu selection into ``source/name`` targets."""
        is_include = not exclude and not other_exclude
        total = len(self._results)
        targets = []
        for number in range(1, total + 1):
            index = total - number if self.bottom_up else number - 1
            if (is_include and number in include) or (not is_include and number not in exclude):
                result = self._results[index]
                targets.append(f"{result.source}/{result.name}")
        return targets
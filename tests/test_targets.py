import io

import pytest

from yippee.menu import Logger, set_use_color
from yippee.targets import (
    AURSearchError,
    NoQueryError,
    SearchBy,
    TargetMode,
    get_search_by,
    remove_invalid_targets,
    split_db_from_name,
)


@pytest.fixture
def buffer():
    set_use_color(False)
    yield io.StringIO()
    set_use_color(True)


def make_logger(buf):
    return Logger(buf, buf, io.StringIO(""), False, "test")


@pytest.mark.parametrize(
    "mode, aur, repo",
    [
        (TargetMode.ANY, True, True),
        (TargetMode.AUR, True, False),
        (TargetMode.REPO, False, True),
    ],
)
def test_target_mode(mode, aur, repo):
    assert mode.at_least_aur() is aur
    assert mode.at_least_repo() is repo


def test_split_db_from_name_with_db():
    assert split_db_from_name("core/linux") == ("core", "linux")


def test_split_db_from_name_without_db():
    assert split_db_from_name("linux") == ("", "linux")


def test_split_db_from_name_only_first_slash():
    assert split_db_from_name("a/b/c") == ("a", "b/c")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("name", SearchBy.NAME),
        ("maintainer", SearchBy.MAINTAINER),
        ("comaintainers", SearchBy.CO_MAINTAINERS),
        ("keywords", SearchBy.KEYWORDS),
        ("", SearchBy.NAME_DESC),
        ("whatever", SearchBy.NAME_DESC),
    ],
)
def test_get_search_by(value, expected):
    assert get_search_by(value) is expected


def test_remove_invalid_targets_any_keeps_all(buffer):
    targets = ["aur/foo", "core/bar", "baz"]
    assert remove_invalid_targets(make_logger(buffer), targets, TargetMode.ANY) == targets
    assert buffer.getvalue() == ""


def test_remove_invalid_targets_repo_mode_drops_aur(buffer):
    result = remove_invalid_targets(make_logger(buffer), ["aur/foo", "core/bar", "baz"], TargetMode.REPO)
    assert result == ["core/bar", "baz"]
    assert "aur/foo: can't use target with option --repo -- skipping" in buffer.getvalue()


def test_remove_invalid_targets_aur_mode_drops_repo(buffer):
    result = remove_invalid_targets(make_logger(buffer), ["aur/foo", "core/bar", "baz"], TargetMode.AUR)
    assert result == ["aur/foo", "baz"]
    assert "core/bar: can't use target with option --aur -- skipping" in buffer.getvalue()


def test_aur_search_error_message():
    error = AURSearchError(ValueError("boom"))
    assert str(error) == "Error during AUR search: boom\n"
    assert isinstance(error.inner, ValueError)


def test_no_query_error_message():
    error = NoQueryError()
    assert str(error) == "no query was executed"
import io

import pytest

from yippee.menu import (
    Logger,
    UserAbort,
    blue,
    bold,
    color_hash,
    cyan,
    green,
    magenta,
    pkgbuild_number_menu,
    red,
    selection_menu,
    set_use_color,
    yellow,
)


@pytest.fixture(autouse=True)
def _colors_on():
    set_use_color(True)
    yield
    set_use_color(True)


def make_logger(answer="", debug=False):
    out, err = io.StringIO(), io.StringIO()
    return Logger(out, err, io.StringIO(answer), debug, "test"), out, err


BASES = ["alpha", "beta", "gamma"]


def dirs_for(tmp_path):
    return {base: str(tmp_path / base) for base in BASES}


def test_color_codes_match_terminal_format():
    assert bold("linux-ck") == "\x1b[1mlinux-ck\x1b[0m"
    assert cyan("5.16.12-1") == "\x1b[36m5.16.12-1\x1b[0m"
    assert magenta("3") == "\x1b[35m3\x1b[0m"


def test_color_hash_known_names():
    assert bold(color_hash("aur")) == "\x1b[1m\x1b[34maur\x1b[0m\x1b[0m"
    assert bold(color_hash("core")) == "\x1b[1m\x1b[33mcore\x1b[0m\x1b[0m"


@pytest.mark.parametrize("name", ["extra", "multilib", "a-very-long-repository-name-to-overflow"])
def test_color_hash_is_stable_and_in_palette(name):
    first = color_hash(name)
    assert first == color_hash(name)
    code = int(first[2:4])
    assert 31 <= code <= 36
    assert first.endswith(name + "\x1b[0m")


def test_colors_disabled_leave_text_untouched():
    set_use_color(False)
    for function in (bold, red, green, yellow, blue, magenta, cyan, color_hash):
        assert function("plain") == "plain"


@pytest.mark.parametrize(
    "answer, expected",
    [
        ("1\n", ["gamma"]),
        ("3\n", ["alpha"]),
        ("1-2\n", ["beta", "gamma"]),
        ("^1\n", ["alpha", "beta"]),
        ("all\n", BASES),
        ("a\n", BASES),
        ("none\n", []),
        ("n\n", []),
        ("beta\n", ["beta"]),
        ("^alpha\n", ["beta", "gamma"]),
    ],
)
def test_selection_menu_answers(tmp_path, answer, expected):
    logger, _, _ = make_logger(answer)
    result = selection_menu(logger, dirs_for(tmp_path), BASES, set(), "Pick?", False, "", None)
    assert result == expected


@pytest.mark.parametrize("answer", ["abort\n", "ab\n"])
def test_selection_menu_abort(tmp_path, answer):
    logger, _, _ = make_logger(answer)
    with pytest.raises(UserAbort):
        selection_menu(logger, dirs_for(tmp_path), BASES, set(), "Pick?", False, "", None)


def test_selection_menu_installed_filters(tmp_path):
    installed = {"beta"}
    logger, _, _ = make_logger("i\n")
    assert selection_menu(logger, dirs_for(tmp_path), BASES, installed, "Pick?", False, "", None) == ["beta"]

    logger, _, _ = make_logger("no\n")
    result = selection_menu(logger, dirs_for(tmp_path), BASES, installed, "Pick?", False, "", None)
    assert result == ["alpha", "gamma"]


def test_selection_menu_uses_default_answer_without_reading(tmp_path):
    logger, _, _ = make_logger("1\n")
    result = selection_menu(logger, dirs_for(tmp_path), BASES, set(), "Pick?", False, "2", None)
    assert result == ["beta"]
    assert logger.stdin.read() == "1\n"


def test_selection_menu_no_confirm_selects_nothing(tmp_path):
    logger, _, _ = make_logger("all\n")
    assert selection_menu(logger, dirs_for(tmp_path), BASES, set(), "Pick?", True, "", None) == []


def test_selection_menu_skip(tmp_path):
    logger, _, _ = make_logger("all\n")
    result = selection_menu(
        logger, dirs_for(tmp_path), BASES, set(), "Pick?", False, "", lambda base: base == "alpha"
    )
    assert result == ["beta", "gamma"]


def test_selection_menu_prints_message(tmp_path):
    logger, out, _ = make_logger("none\n")
    selection_menu(logger, dirs_for(tmp_path), BASES, set(), "Diffs to show?", False, "", None)
    assert "Diffs to show?" in out.getvalue()


def test_number_menu_lists_every_base(tmp_path):
    (tmp_path / "beta").mkdir()
    logger, out, _ = make_logger()
    pkgbuild_number_menu(logger, dirs_for(tmp_path), BASES, {"gamma"})
    lines = out.getvalue().splitlines()

    assert len(lines) == len(BASES)
    for line, base in zip(lines, BASES):
        assert bold(base) in line
    assert "(Installed)" in lines[2]
    assert "(Installed)" not in lines[0]
    assert "(Build Files Exist)" in lines[1]
    assert "(Build Files Exist)" not in lines[0]


def test_number_menu_counts_down(tmp_path):
    logger, out, _ = make_logger()
    pkgbuild_number_menu(logger, dirs_for(tmp_path), BASES, set())
    lines = out.getvalue().splitlines()
    for line, number in zip(lines, (3, 2, 1)):
        assert line.startswith(magenta(f"{number:3d}"))


def test_get_input_reads_line():
    logger, _, _ = make_logger("1 2 3\n")
    assert logger.get_input("", False) == "1 2 3"


def test_get_input_returns_default():
    logger, out, _ = make_logger("ignored\n")
    assert logger.get_input("all", False) == "all"
    assert "all" in out.getvalue()


def test_get_input_end_of_input():
    logger, _, _ = make_logger("")
    with pytest.raises(EOFError):
        logger.get_input("", False)


@pytest.mark.parametrize(
    "answer, default, expected",
    [
        ("y\n", False, True),
        ("yes\n", False, True),
        ("n\n", True, False),
        ("No\n", True, False),
        ("\n", True, True),
        ("", False, False),
    ],
)
def test_continue_task(answer, default, expected):
    logger, _, _ = make_logger(answer)
    assert logger.continue_task("Proceed?", default, False) is expected


def test_continue_task_no_confirm_returns_default():
    logger, _, _ = make_logger("n\n")
    assert logger.continue_task("Proceed?", True, True) is True


def test_error_goes_to_stderr():
    logger, out, err = make_logger()
    logger.error("boom")
    assert "boom" in err.getvalue()
    assert out.getvalue() == ""


def test_debug_only_when_enabled():
    quiet, quiet_out, _ = make_logger()
    quiet.debug("hidden")
    assert quiet_out.getvalue() == ""

    loud, loud_out, _ = make_logger(debug=True)
    loud.debug("shown")
    assert "shown" in loud_out.getvalue()


def test_println_joins_with_spaces():
    logger, out, _ = make_logger()
    logger.println("one", "two")
    assert out.getvalue() == "one two\n"
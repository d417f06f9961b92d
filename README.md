# yippee

Building blocks for an AUR helper: searching the AUR and the sync
repositories, fetching PKGBUILDs and their git repositories, and reviewing
them before a build. It has no dependencies outside the standard library.

## Installation

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Modules

- `yippee.intrange` parses number-menu answers. `parse_number_menu(text)`
  splits on whitespace and commas and returns a `NumberMenuSelection` with
  `include` and `exclude` (`IntRanges`, lists of `IntRange` that support
  `n in ranges`) and `other_include` / `other_exclude`, the lower-cased
  words that are not numbers. `^` negates a number, a range or a word.
- `yippee.menu` holds the `Logger` (writes to given streams and reads
  answers with `get_input` and `continue_task`), the colour helpers
  `bold`, `red`, `green`, `yellow`, `blue`, `magenta`, `cyan`,
  `color_hash` and the switch `set_use_color`, and `selection_menu`, which
  prints a numbered list of package bases and returns those the user picks.
  Answering `abort` or `ab` raises `UserAbort`.
- `yippee.multierror` provides `MultiError`, an exception that gathers
  errors from concurrent work; `raise_if_errors()` raises it only when
  something was added.
- `yippee.targets` defines `TargetMode` (`ANY`, `AUR`, `REPO`), `SearchBy`,
  the records `AURQuery`, `AURPackage` and `RepoPackage`, the errors
  `AURSearchError` and `NoQueryError`, `split_db_from_name` and
  `remove_invalid_targets`, which drops `db/name` targets that the mode does
  not allow and warns about each.
- `yippee.versions` has `vercmp` for `[epoch:]version[-release]` strings,
  `get_version_diff`, which colours where two versions part ways,
  `is_devel_name` / `is_devel_package`, and `AURWarnings`, which collects
  orphaned, out-of-date, missing and locally newer packages and prints them.
- `yippee.news` parses an RSS news feed (`parse_feed`), renders the small
  HTML subset used in its items for a terminal (`parse_news`) and prints the
  items newer than a cut-off date (`print_news_feed`). The feed is fetched
  with `urllib` unless a `fetch` callable is given.
- `yippee.search` provides `SourceQueryBuilder`, which merges AUR and
  repository results, sorts them by name or by a relevance score
  (`hamming_similarity`, votes, and optionally the source), prints them in
  `SearchVerbosity` styles and turns a number-menu selection into
  `source/name` targets with `get_targets`. `human_size` formats byte counts.
- `yippee.fetch` builds package repository URLs (`convert_pkg_name_for_url`,
  `pkgbuild_url`, `repo_url`), downloads single PKGBUILDs (`abs_pkgbuild`,
  `aur_pkgbuild`) and many at once (`pkgbuilds`), and clones or pulls
  PKGBUILD repositories (`download_git_repo`, `abs_pkgbuild_repo`,
  `aur_pkgbuild_repo`, `aur_pkgbuild_repos`, `pkgbuild_repos`) through a
  `GitCommandRunner`, which runs `git` with `subprocess`. Batch functions run
  up to 20 jobs in parallel; if any fail they raise a `MultiError` whose
  `results` attribute holds what succeeded.
- `yippee.reviews` runs the review steps over downloaded build directories:
  `clean_fn` (git reset and clean), `diff_fn` with `show_pkgbuild_diffs` and
  `update_pkgbuild_seen_ref` (shows changes since the last reviewed commit,
  tracked in the `AUR_SEEN` ref), and `edit_fn` with `edit_pkgbuilds` and
  `find_editor` (configured editor, then `$VISUAL`, then `$EDITOR`, then
  asks).

## Example

    from yippee.intrange import parse_number_menu

    selection = parse_number_menu("1-3 ^2 all")
    assert 1 in selection.include
    assert 2 in selection.exclude
    assert "all" in selection.other_include

    from yippee.fetch import pkgbuild_url

    print(pkgbuild_url("my++package"))

## What it does not do

This is a library, not a finished helper. It installs no command, does not
read a configuration file and does not build or install packages. It has no
access of its own to the local or sync package databases and no AUR RPC
client: searches and lookups use objects you pass in, which answer
`get(query)` for the AUR and `sync_packages`, `local_package`,
`package_groups`, `sync_package` and `sync_package_from_db` for the
databases. HTTP downloads default to `urllib`, or use an `http_get`
callable returning `(status, body)`.
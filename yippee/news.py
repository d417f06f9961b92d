"""Fetching and printing the distribution news feed."""

from __future__ import annotations

import html
import urllib.request
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from yippee.menu import Logger, bold, magenta

NEWS_URL = "https://archlinux.org/feeds/news"
CYAN_CODE = "\x1b[36m"
RESET_CODE = "\x1b[0m"
_DC_NAMESPACE = "{http://purl.org/dc/elements/1.1/}"
_RFC1123Z = "%a, %d %b %Y %H:%M:%S %z"


@dataclass
class NewsItem:
    """One entry of the news feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""
    creator: str = ""


def parse_news(text: str) -> str:
    """Render the small HTML subset used by the news for a terminal."""
    out: list[str] = []
    tag: list[str] = []
    escape: list[str] = []
    in_tag = False
    in_escape = False

    for char in text:
        if in_tag:
            if char == ">":
                in_tag = False
                name = "".join(tag)
                if name == "code":
                    out.append(CYAN_CODE)
                elif name == "/code":
                    out.append(RESET_CODE)
                elif name == "/p":
                    out.append("\n")
            else:
                tag.append(char)
            continue

        if in_escape:
            escape.append(char)
            if char == ";":
                in_escape = False
                out.append(html.unescape("".join(escape)))
            continue

        if char == "<":
            in_tag = True
            tag.clear()
        elif char == "&":
            in_escape = True
            escape[:] = [char]
        else:
            out.append(char)

    out.append(RESET_CODE)
    return "".join(out)


def parse_feed(data: bytes | str) -> list[NewsItem]:
    """Parse an RSS document into its items; raises ``ET.ParseError`` on bad XML."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    root = ET.fromstring(data)
    channel = root.find("channel")
    if channel is None:
        return []
    return [
        NewsItem(
            title=node.findtext("title", ""),
            link=node.findtext("link", ""),
            description=node.findtext("description", ""),
            pub_date=node.findtext("pubDate", ""),
            creator=node.findtext(f"{_DC_NAMESPACE}creator", ""),
        )
        for node in channel.findall("item")
    ]


def _print_item(logger: Logger, item: NewsItem, cut_off: datetime | None, show_all: bool, quiet: bool) -> None:
    formatted = ""
    try:
        date = datetime.strptime(item.pub_date, _RFC1123Z)
    except ValueError as exc:
        logger.error(exc)
    else:
        formatted = datetime.fromtimestamp(int(date.timestamp())).strftime("%Y-%m-%d %H:%M")
        if not show_all and cut_off is not None and cut_off.astimezone() > date:
            return

    logger.println(bold(magenta(formatted)), bold(item.title.strip()))

    if not quiet:
        logger.println(parse_news(item.description).strip())


def _fetch_news() -> bytes:
    with urllib.request.urlopen(NEWS_URL) as response:
        return response.read()


def print_news_feed(
    logger: Logger,
    cut_off_date: datetime | None,
    bottom_up: bool,
    show_all: bool,
    quiet: bool,
    fetch: Callable[[], bytes | str] | None = None,
) -> None:
    """Fetch the news feed and print the items newer than ``cut_off_date``.

    A naive ``cut_off_date`` is taken as local time; ``None`` prints everything.
    """
    items = parse_feed((fetch or _fetch_news)())
    ordered = reversed(items) if bottom_up else items
    for item in ordered:
        _print_item(logger, item, cut_off_date, show_all, quiet)
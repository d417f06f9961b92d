import io
import time
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from yippee.menu import Logger, set_use_color
from yippee.news import parse_feed, parse_news, print_news_feed

LAST_NEWS = """
<rss xmlns:atom="http://www.w3.org/2005/Atom" version="2.0">
   <channel>
      <title>Arch Linux: Recent news updates</title>
      <link>https://www.archlinux.org/news/</link>
      <description>The latest and greatest news from the Arch Linux distribution.</description>
      <atom:link href="https://www.archlinux.org/feeds/news/" rel="self" />
      <language>en-us</language>
      <lastBuildDate>Tue, 14 Apr 2020 16:30:32 +0000</lastBuildDate>
      <item>
         <title>zn_poly 0.9.2-2 update requires manual intervention</title>
         <link>https://www.archlinux.org/news/zn_poly-092-2-update-requires-manual-intervention/</link>
         <description>&lt;p&gt;The zn_poly package prior to version 0.9.2-2 was missing a soname link.</description>
         <dc:creator xmlns:dc="http://purl.org/dc/elements/1.1/">Antonio Rojas</dc:creator>
         <pubDate>Tue, 14 Apr 2020 16:30:30 +0000</pubDate>
      </item>
   </channel>
</rss>
"""

SAMPLE_NEWS = """<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom"><channel><title>Arch Linux: Recent news updates</title><link>https://www.archlinux.org/news/</link><item><title>zn_poly 0.9.2-2 update requires manual intervention</title><link>https://www.archlinux.org/news/zn_poly-092-2-update-requires-manual-intervention/</link><description>&lt;p&gt;when updating, use&lt;/p&gt;
&lt;pre&gt;&lt;code&gt;pacman -Syu --overwrite usr/lib/libzn_poly-0.9.so
&lt;/code&gt;&lt;/pre&gt;</description><dc:creator xmlns:dc="http://purl.org/dc/elements/1.1/">Antonio Rojas</dc:creator><pubDate>Tue, 14 Apr 2020 16:30:30 +0000</pubDate></item><item><title>nss&gt;=3.51.1-1 and lib32-nss&gt;=3.51.1-1 updates require manual intervention</title><link>https://www.archlinux.org/news/nss3511-1-and-lib32-nss3511-1-updates-require-manual-intervention/</link><description>&lt;p&gt;to perform the upgrade.&lt;/p&gt;</description><dc:creator xmlns:dc="http://purl.org/dc/elements/1.1/">Jan Alexander Steffens</dc:creator><pubDate>Mon, 13 Apr 2020 00:35:58 +0000</pubDate></item><item><title>hplip 3.20.3-2 update requires manual intervention</title><link>https://www.archlinux.org/news/hplip-3203-2-update-requires-manual-intervention/</link><description>&lt;p&gt;to perform the upgrade.&lt;/p&gt;</description><dc:creator xmlns:dc="http://purl.org/dc/elements/1.1/">Andreas Radke</dc:creator><pubDate>Thu, 19 Mar 2020 06:53:30 +0000</pubDate></item></channel></rss>
"""

ZN = "zn_poly 0.9.2-2 update requires manual intervention"
NSS = "nss>=3.51.1-1 and lib32-nss>=3.51.1-1 updates require manual intervention"
HPLIP = "hplip 3.20.3-2 update requires manual intervention"


@pytest.fixture
def env(monkeypatch):
    set_use_color(False)
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
    set_use_color(True)


def run(feed, cut_off, bottom_up, show_all, quiet):
    buf = io.StringIO()
    logger = Logger(buf, buf, io.StringIO(""), False, "logger")
    print_news_feed(logger, cut_off, bottom_up, show_all, quiet, fetch=lambda: feed)
    return buf.getvalue()


def test_parse_news_code_and_paragraph():
    assert parse_news("<p>hi</p>") == "hi\n\x1b[0m"
    assert parse_news("<code>x</code>") == "\x1b[36mx\x1b[0m\x1b[0m"


def test_parse_news_escapes():
    assert parse_news("a &amp; b &gt;= c") == "a & b >= c\x1b[0m"


def test_parse_feed_items():
    items = parse_feed(SAMPLE_NEWS)
    assert [item.title for item in items] == [ZN, NSS, HPLIP]
    assert items[0].creator == "Antonio Rojas"
    assert items[1].pub_date == "Mon, 13 Apr 2020 00:35:58 +0000"


def test_parse_feed_invalid():
    with pytest.raises(ET.ParseError):
        parse_feed("<rss><channel>")


def test_all_verbose_bottom_up(env):
    out = run(SAMPLE_NEWS, datetime.now(timezone.utc), True, True, False)
    assert out.index(HPLIP) < out.index(NSS) < out.index(ZN)
    assert "\x1b[36mpacman -Syu --overwrite usr/lib/libzn_poly-0.9.so\n\x1b[0m" in out


def test_all_quiet(env):
    cut = datetime(2020, 4, 13, tzinfo=timezone.utc)
    out = run(SAMPLE_NEWS, cut, True, True, True)
    assert out == f"2020-03-19 06:53 {HPLIP}\n2020-04-13 00:35 {NSS}\n2020-04-14 16:30 {ZN}\n"


def test_latest_quiet(env):
    cut = datetime(2020, 4, 13, tzinfo=timezone.utc)
    out = run(SAMPLE_NEWS, cut, True, False, True)
    assert out == f"2020-04-13 00:35 {NSS}\n2020-04-14 16:30 {ZN}\n"


def test_latest_quiet_topdown(env):
    cut = datetime(2020, 4, 13, tzinfo=timezone.utc)
    out = run(SAMPLE_NEWS, cut, False, False, True)
    assert out == f"2020-04-14 16:30 {ZN}\n2020-04-13 00:35 {NSS}\n"


def test_same_day_news_is_printed(env):
    cut = datetime(2020, 4, 14, 13, 4, 5, tzinfo=timezone.utc)
    out = run(LAST_NEWS, cut, True, False, False)
    assert out == (
        f"2020-04-14 16:30 {ZN}\n"
        "The zn_poly package prior to version 0.9.2-2 was missing a soname link.\x1b[0m\n"
    )


def test_bad_date_is_reported_and_printed(env):
    feed = "<rss><channel><item><title>x</title><pubDate>garbage</pubDate></item></channel></rss>"
    out = run(feed, datetime.now(timezone.utc), False, False, True)
    assert out.endswith(" x\n")
    assert "garbage" in out
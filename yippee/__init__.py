"""Searching, fetching and reviewing AUR and repository PKGBUILDs."""

__version__ = "12.0.0"
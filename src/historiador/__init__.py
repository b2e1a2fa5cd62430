"""Historiador - batch importer of user stories from CSV/Excel into Jira."""

__version__ = "1.0.0"

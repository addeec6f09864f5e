"""Offline mirror of a GitHub issue tracker as markdown files."""

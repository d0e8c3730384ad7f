"""Discover git repositories, follow their remotes and record what was found."""

__version__ = "0.1.0"

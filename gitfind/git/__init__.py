"""Git-backed repository inspection."""

from .inspector import CommandError, CommandRunner, GitInspector, InspectionError

__all__ = ["CommandError", "CommandRunner", "GitInspector", "InspectionError"]

"""CLI commands for mongoapm.

Example:
    $ mongoapm-inspector --database media-searches --collection youtube_searches
"""

from mongoapm.cli.inspector import cli

__all__ = ["cli"]

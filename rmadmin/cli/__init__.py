"""CLI package for resource manager administration.

The dispatcher lives in rmadmin.cli.dispatcher and the console entry point
in rmadmin.cli.main.
"""

from rmadmin.cli.client import AdminClient, connect

__all__ = ["AdminClient", "connect"]

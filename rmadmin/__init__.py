"""rmadmin: administrative commands for a cluster resource manager.

Refreshes manager configuration, queries group mappings and manages node
labels. Label commands fall back to a standalone file-backed label store
when the manager cannot be reached.
"""

__version__ = "0.3.0"

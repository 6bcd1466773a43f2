"""
g2g — Gitea → GitHub sync.

Commits and pushes a working tree to its primary remote, then reconciles a
mirror working tree against it and pushes that, under its own history, to
a second remote.
"""

__version__ = "0.1.0"

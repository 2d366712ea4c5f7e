"""gitlab-tree - terminal browser for GitLab groups and projects."""

__version__ = "0.1.0"

"""Clone or update every repository of one or more GitLab groups locally."""

__version__ = "1.0.0"

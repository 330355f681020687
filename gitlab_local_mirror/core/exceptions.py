"""
Custom exceptions for the GitLab local mirror project.

This module provides a hierarchy of exceptions used throughout the project.
"""

class MirrorError(Exception):
    """Base exception for mirroring operations."""

class ConfigError(MirrorError):
    """Configuration related errors."""

class PreflightError(MirrorError):
    """Missing tools or credentials detected before any work starts."""

class ApiError(MirrorError):
    """GitLab API related errors."""

"""
Base command utilities for standardizing CLI interfaces.
"""

import argparse
import logging
import sys
import traceback
from typing import Any, Callable, List, Optional

from dotenv import load_dotenv

from gitlab_local_mirror.core.config import DEFAULT_GITLAB_URL, get_env_variable
from gitlab_local_mirror.core.exceptions import ConfigError, MirrorError, PreflightError
from gitlab_local_mirror.core.log import setup_logging

__all__ = ["BaseCommand", "setup_logging"]


class BaseCommand:
    """Base class for standardizing command-line interfaces."""

    def __init__(
        self,
        description: str,
        epilog: Optional[str] = None,
        formatter_class: Any = argparse.RawDescriptionHelpFormatter,
        prog: Optional[str] = None,
    ):
        """
        Initialize the base command.

        Args:
            description: Command description for help text
            epilog: Optional epilog text for help output
            formatter_class: Argument parser formatter class
            prog: Program name shown in usage messages
        """
        # Setup logging
        setup_logging()

        # Load environment variables
        load_dotenv()

        # Create parser
        self.parser = argparse.ArgumentParser(
            prog=prog, description=description, epilog=epilog, formatter_class=formatter_class
        )

        # Add common argument groups
        self.connection_group = self.parser.add_argument_group("GitLab Connection")
        self.behavior_group = self.parser.add_argument_group("Behavior")
        self.debug_group = self.parser.add_argument_group("Debug Options")

        # Add standard arguments
        self._add_standard_arguments()

    def _add_standard_arguments(self) -> None:
        """Add standard arguments that apply to most commands."""
        self.connection_group.add_argument(
            "-t",
            "--token",
            help="GitLab personal access token (default: from GITLAB_TOKEN env var)",
            default=get_env_variable("GITLAB_TOKEN"),
        )
        self.connection_group.add_argument(
            "--gitlab-url",
            help=f"Default GitLab URL (default: from GITLAB_URL env var or {DEFAULT_GITLAB_URL})",
            default=get_env_variable("GITLAB_URL") or DEFAULT_GITLAB_URL,
        )

        self.debug_group.add_argument(
            "-d", "--debug", help="Enable debug logging", action="store_true"
        )

    def parse_args(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command line arguments.

        Returns:
            Parsed command line arguments
        """
        args = self.parser.parse_args(argv)

        # Enable debug logging if requested
        if args.debug:
            setup_logging(logging.DEBUG)

        return args

    def run_command(self, command_func: Callable, *args, **kwargs) -> Any:
        """
        Run the command function with standardized error handling.

        Args:
            command_func: Function to run
            *args: Positional arguments for the command function
            **kwargs: Keyword arguments for the command function
        """
        try:
            return command_func(*args, **kwargs)
        except ConfigError as e:
            logging.error("Configuration error: %s", e)
            sys.exit(1)
        except PreflightError as e:
            logging.error("Pre-flight check failed: %s", e)
            sys.exit(1)
        except MirrorError as e:
            logging.error("Mirror operation failed: %s", e)
            sys.exit(2)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logging.error("Unexpected error: %s", e)
            traceback.print_exc()
            sys.exit(3)

"""
Main entry point for the GitLab local mirror tool.
"""

import sys
from gitlab_local_mirror.cli.main import main

if __name__ == "__main__":
    sys.exit(main())

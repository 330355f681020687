#!/usr/bin/env python
"""Setup script for the GitLab local mirror environment."""

import shutil
from pathlib import Path

from gitlab_local_mirror.core.config import DEFAULT_GITLAB_URL, DEFAULT_LOCAL_ROOT


def create_env_file(env_path: Path = Path(".env")):
    """Create .env file if it doesn't exist."""
    if env_path.exists():
        print(".env file already exists.")
        overwrite = input("Do you want to overwrite it? (y/n): ").lower()
        if overwrite != "y":
            return

    # Check if .env.example exists
    example_path = env_path.parent / ".env.example"
    if example_path.exists():
        # Copy example as starting point
        shutil.copy(example_path, env_path)
        print(f"Created .env file from .env.example at {env_path.absolute()}")
    else:
        # Create from scratch
        print("Creating new .env file...")

        token = input("GITLAB_TOKEN: ")
        groups = input("GITLAB_GROUPS (space-separated): ")
        gitlab_url = input(f"GITLAB_URL [{DEFAULT_GITLAB_URL}]: ") or DEFAULT_GITLAB_URL
        routes = input("GITLAB_ENDPOINT_ROUTES (pattern=url,...) []: ")
        local_dir = input(f"GITLAB_MIRROR_DIR [{DEFAULT_LOCAL_ROOT}]: ") or str(DEFAULT_LOCAL_ROOT)
        skip_test = input("GITLAB_SKIP_CONNECTIVITY_TEST [true/false]: ").lower() in (
            "true",
            "yes",
            "1",
            "y",
        )

        with open(env_path, "w", encoding="utf-8") as f:
            f.write(f'GITLAB_TOKEN="{token}"\n')
            f.write(f'GITLAB_GROUPS="{groups}"\n')
            f.write(f'GITLAB_URL="{gitlab_url}"\n')
            f.write(f'GITLAB_ENDPOINT_ROUTES="{routes}"\n')
            f.write(f'GITLAB_MIRROR_DIR="{local_dir}"\n')
            f.write(f'GITLAB_SKIP_CONNECTIVITY_TEST={"true" if skip_test else "false"}\n')

        print(f".env file created at {env_path.absolute()}")


def create_example_groups_file(file_path: Path = Path("groups.example.csv")):
    """Create an example groups.csv file if it doesn't exist."""
    if file_path.exists():
        print(f"{file_path.name} already exists.")
        return

    with open(file_path, "w", encoding="utf-8") as f:
        f.write("# GitLab group path (subgroups are included automatically)\n")
        f.write("my-group\n")
        f.write("my-other-group/subgroup\n")

    print(f"Created example groups file at {file_path.absolute()}")


def check_dependencies():
    """Check if required Python packages and git are installed."""
    try:
        import gitlab  # noqa: F401
        import pandas  # noqa: F401
        import pydantic  # noqa: F401
        from dotenv import load_dotenv  # noqa: F401
    except ImportError as e:
        print(f"Missing dependency: {e}")
        print("Please install required dependencies:")
        print("pip install -e .")
        return False

    if shutil.which("git") is None:
        print("Missing dependency: git")
        print("Install it on Ubuntu with: sudo apt-get update && sudo apt-get install -y git")
        return False

    return True


def setup():
    """Run the setup process."""
    print("Setting up GitLab local mirror environment...\n")

    # Check dependencies
    if not check_dependencies():
        return

    # Create .env file
    create_env_file()

    # Create example groups file
    create_example_groups_file()

    print("\nSetup complete!")
    print("Next steps:")
    print("1. Edit .env file if needed")
    print("2. Set up git credentials: git config --global credential.helper store")
    print("3. Run the tool: gitlab-local-mirror")


if __name__ == "__main__":
    setup()

"""
Tests for the interactive environment bootstrap.
"""

from unittest.mock import patch

from gitlab_local_mirror.setup_env import create_env_file, create_example_groups_file


def test_env_file_is_written_from_answers(tmp_path):
    env_path = tmp_path / ".env"
    answers = iter(["glpat-abc", "team-a team-b", "", "", "/srv/mirror", "yes"])

    with patch("builtins.input", lambda _prompt="": next(answers)):
        create_env_file(env_path)

    content = env_path.read_text(encoding="utf-8")
    assert 'GITLAB_TOKEN="glpat-abc"' in content
    assert 'GITLAB_GROUPS="team-a team-b"' in content
    assert 'GITLAB_URL="https://gitlab.com"' in content
    assert 'GITLAB_MIRROR_DIR="/srv/mirror"' in content
    assert "GITLAB_SKIP_CONNECTIVITY_TEST=true" in content


def test_env_example_is_copied(tmp_path):
    (tmp_path / ".env.example").write_text("GITLAB_TOKEN=\n", encoding="utf-8")
    env_path = tmp_path / ".env"

    create_env_file(env_path)

    assert env_path.read_text(encoding="utf-8") == "GITLAB_TOKEN=\n"


def test_existing_env_file_is_kept_unless_confirmed(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("KEEP=1\n", encoding="utf-8")

    with patch("builtins.input", return_value="n"):
        create_env_file(env_path)

    assert env_path.read_text(encoding="utf-8") == "KEEP=1\n"


def test_example_groups_file(tmp_path):
    path = tmp_path / "groups.example.csv"

    create_example_groups_file(path)
    create_example_groups_file(path)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("#")
    assert "my-group" in lines

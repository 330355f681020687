"""
Tests for the gitlab-local-mirror command line.
"""

from unittest import mock

import pytest

from gitlab_local_mirror.cli import main as cli_main
from gitlab_local_mirror.cli.commands import mirror_command as command_module
from gitlab_local_mirror.core.config import EndpointRoute
from gitlab_local_mirror.core.exceptions import PreflightError
from gitlab_local_mirror.core.report import GroupReport, ProjectOutcome, ProjectStatus, RunReport


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GITLAB_TOKEN",
        "GITLAB_GROUPS",
        "GITLAB_URL",
        "GITLAB_ENDPOINT_ROUTES",
        "GITLAB_MIRROR_DIR",
        "GITLAB_SKIP_CONNECTIVITY_TEST",
        "GITLAB_SKIP_CREDENTIALS_CHECK",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.setattr("gitlab_local_mirror.cli.base_command.load_dotenv", lambda: None)
    return monkeypatch


def finished_report():
    group = GroupReport(group="team/alpha", url="https://gitlab.com")
    group.add(ProjectOutcome("team/alpha/svc-a", ProjectStatus.CLONED))
    group.add(ProjectOutcome("team/alpha/svc-b", ProjectStatus.FAILED, "clone failed"))
    return RunReport(groups=[group])


def test_missing_token_is_a_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["-g", "team/alpha"])

    assert excinfo.value.code == 2
    assert "token" in capsys.readouterr().err


def test_missing_groups_is_a_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["-t", "glpat-x"])

    assert excinfo.value.code == 2
    assert "group paths" in capsys.readouterr().err


@mock.patch("gitlab_local_mirror.cli.main.mirror_command")
def test_arguments_are_forwarded(mirror_command, tmp_path):
    exit_code = cli_main.main(
        [
            "-t",
            "glpat-x",
            "-g",
            "team/alpha team/beta",
            "team/gamma",
            "-s",
            "--skip-credentials-check",
            "--route",
            "custom=https://gitlab.example.com",
            "--local-dir",
            str(tmp_path),
            "--max-workers",
            "2",
        ]
    )

    assert exit_code == 0
    kwargs = mirror_command.call_args[1]
    assert kwargs["token"] == "glpat-x"
    assert kwargs["groups"] == ["team/gamma", "team/alpha", "team/beta"]
    assert kwargs["skip_connectivity_check"] is True
    assert kwargs["skip_credentials_check"] is True
    assert kwargs["routes"] == [EndpointRoute(pattern="custom", url="https://gitlab.example.com")]
    assert kwargs["local_dir"] == str(tmp_path)
    assert kwargs["max_workers"] == 2
    assert kwargs["gitlab_url"] == "https://gitlab.com"


@mock.patch("gitlab_local_mirror.cli.main.mirror_command")
def test_environment_provides_defaults(mirror_command, clean_env, tmp_path):
    clean_env.setenv("GITLAB_TOKEN", "glpat-env")
    clean_env.setenv("GITLAB_GROUPS", "team/alpha team/beta")
    clean_env.setenv("GITLAB_ENDPOINT_ROUTES", "custom=https://gitlab.example.com")
    clean_env.setenv("GITLAB_SKIP_CONNECTIVITY_TEST", "true")
    groups_file = tmp_path / "groups.csv"
    groups_file.write_text("team/from-file\n")

    cli_main.main([])
    kwargs = mirror_command.call_args[1]
    assert kwargs["token"] == "glpat-env"
    assert kwargs["groups"] == ["team/alpha", "team/beta"]
    assert kwargs["skip_connectivity_check"] is True
    assert kwargs["routes"][0].url == "https://gitlab.example.com"

    cli_main.main(["--groups-file", str(groups_file)])
    assert mirror_command.call_args[1]["groups"] == ["team/from-file"]


def test_invalid_route_exits_with_config_error():
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["-t", "glpat-x", "team/alpha", "--route", "no-url-here"])

    assert excinfo.value.code == 1


def test_preflight_failure_exits_before_work(tmp_path):
    missing_git = PreflightError("Missing required tools: git")
    with mock.patch.object(
        command_module, "check_required_tools", side_effect=missing_git
    ), mock.patch.object(command_module, "MirrorService") as service:
        with pytest.raises(SystemExit) as excinfo:
            cli_main.main(["-t", "glpat-x", "team/alpha", "--local-dir", str(tmp_path)])

    assert excinfo.value.code == 1
    service.assert_not_called()


def test_mirror_command_prints_summary_and_exports(tmp_path, capsys):
    report_file = tmp_path / "report.csv"
    with mock.patch.object(command_module, "check_required_tools"), mock.patch.object(
        command_module, "check_git_credentials"
    ) as check_credentials, mock.patch.object(command_module, "MirrorService") as service:
        service.return_value.run.return_value = finished_report()

        report = command_module.mirror_command(
            token="glpat-x",
            groups=["team/alpha"],
            local_dir=str(tmp_path / "mirror"),
            gitlab_url="https://gitlab.com",
            routes=[EndpointRoute(pattern="custom", url="https://gitlab.example.com")],
            report_file=str(report_file),
        )

    out = capsys.readouterr().out
    assert report.cloned == 1
    assert "===== MIRROR SUMMARY =====" in out
    assert "Failed: 1" in out
    assert "Check logs for details on failures." in out
    assert report_file.is_file()
    check_credentials.assert_called_once_with(["gitlab.com", "gitlab.example.com"])
    config = service.call_args[0][0]
    assert config.groups == ["team/alpha"]


def test_mirror_command_skips_credentials_check(tmp_path):
    with mock.patch.object(command_module, "check_required_tools"), mock.patch.object(
        command_module, "check_git_credentials"
    ) as check_credentials, mock.patch.object(command_module, "MirrorService") as service:
        service.return_value.run.return_value = RunReport()

        command_module.mirror_command(
            token="glpat-x",
            groups=["team/alpha"],
            local_dir=str(tmp_path),
            gitlab_url="https://gitlab.com",
            skip_credentials_check=True,
        )

    check_credentials.assert_not_called()

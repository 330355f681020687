"""
Tests for report aggregation and CSV export.
"""

import pandas as pd

from gitlab_local_mirror.core.report import GroupReport, ProjectOutcome, ProjectStatus, RunReport
from gitlab_local_mirror.utils.export import export_report


def sample_report():
    alpha = GroupReport(group="team/alpha", url="https://gitlab.com")
    alpha.add(ProjectOutcome("team/alpha/svc-a", ProjectStatus.CLONED))
    alpha.add(ProjectOutcome("team/alpha/svc-b", ProjectStatus.SKIPPED, "access denied or not found"))
    alpha.add(ProjectOutcome("team/alpha/svc-c", ProjectStatus.UPDATED, "on main"))
    beta = GroupReport(group="team/beta", error="connectivity check failed")
    return RunReport(groups=[alpha, beta])


def test_aggregate_counts():
    report = sample_report()

    assert (report.cloned, report.updated, report.skipped, report.failed) == (1, 1, 1, 0)
    assert report.succeeded == 2
    assert report.total_projects == 3
    assert [g.group for g in report.failed_groups] == ["team/beta"]


def test_summary_lines_cover_groups_and_totals():
    lines = sample_report().summary_lines()

    assert "  team/alpha: 1 cloned, 1 updated, 1 skipped, 0 failed" in lines
    assert "  team/beta: group skipped (connectivity check failed)" in lines
    assert "Failed groups: 1" in lines


def test_export_report(tmp_path):
    path = tmp_path / "reports" / "mirror.csv"

    rows = export_report(sample_report(), path)

    df = pd.read_csv(path, keep_default_na=False)
    assert rows == 4
    assert list(df.columns) == ["group", "project", "status", "message"]
    assert df[df["project"] == "team/alpha/svc-b"]["status"].item() == "skipped"
    assert df[df["group"] == "team/beta"]["status"].item() == "group_failed"

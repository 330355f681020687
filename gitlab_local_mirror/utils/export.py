"""
Export of a run report to CSV for later review.
"""

import logging
from pathlib import Path
from typing import Dict, List

import pandas as pd

from gitlab_local_mirror.core.report import RunReport

logger = logging.getLogger(__name__)

COLUMNS = ["group", "project", "status", "message"]


def report_rows(report: RunReport) -> List[Dict[str, str]]:
    """One row per project outcome, plus one row per abandoned group."""
    rows = []
    for group in report.groups:
        if not group.ok:
            rows.append(
                {
                    "group": group.group,
                    "project": "",
                    "status": "group_failed",
                    "message": group.error,
                }
            )
        for outcome in group.outcomes:
            rows.append(
                {
                    "group": group.group,
                    "project": outcome.path,
                    "status": outcome.status.value,
                    "message": outcome.message,
                }
            )
    return rows


def export_report(report: RunReport, path: Path) -> int:
    """
    Write the report to ``path`` as CSV.

    Returns:
        Number of rows written
    """
    rows = report_rows(report)
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows, columns=COLUMNS).to_csv(path, index=False)
    logger.info("Exported %d report rows to %s", len(rows), path)
    return len(rows)

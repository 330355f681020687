"""
Result models for a mirroring run.

Each group task builds its own ``GroupReport``; the orchestrator joins them
into a ``RunReport`` once every task has finished.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ProjectStatus(str, Enum):
    """Final state of a single project after processing."""

    CLONED = "cloned"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProjectOutcome:
    """What happened to one project."""

    path: str
    status: ProjectStatus
    message: str = ""


@dataclass
class GroupReport:
    """Outcome of every project handled by one group task."""

    group: str
    url: str = ""
    outcomes: List[ProjectOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def add(self, outcome: ProjectOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: ProjectStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def cloned(self) -> int:
        return self.count(ProjectStatus.CLONED)

    @property
    def updated(self) -> int:
        return self.count(ProjectStatus.UPDATED)

    @property
    def skipped(self) -> int:
        return self.count(ProjectStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(ProjectStatus.FAILED)

    @property
    def succeeded(self) -> int:
        return self.cloned + self.updated

    @property
    def ok(self) -> bool:
        """True when the group itself was reachable and listed."""
        return self.error is None


@dataclass
class RunReport:
    """Aggregate of all group reports of a run."""

    groups: List[GroupReport] = field(default_factory=list)

    def _total(self, attr: str) -> int:
        return sum(getattr(group, attr) for group in self.groups)

    @property
    def cloned(self) -> int:
        return self._total("cloned")

    @property
    def updated(self) -> int:
        return self._total("updated")

    @property
    def skipped(self) -> int:
        return self._total("skipped")

    @property
    def failed(self) -> int:
        return self._total("failed")

    @property
    def succeeded(self) -> int:
        return self._total("succeeded")

    @property
    def total_projects(self) -> int:
        return sum(len(group.outcomes) for group in self.groups)

    @property
    def failed_groups(self) -> List[GroupReport]:
        return [group for group in self.groups if not group.ok]

    def group(self, name: str) -> Optional[GroupReport]:
        for group in self.groups:
            if group.group == name:
                return group
        return None

    def summary_lines(self) -> List[str]:
        """Human readable per-group and aggregate counts."""
        lines = []
        for group in self.groups:
            if group.ok:
                lines.append(
                    f"  {group.group}: {group.cloned} cloned, {group.updated} updated, "
                    f"{group.skipped} skipped, {group.failed} failed"
                )
            else:
                lines.append(f"  {group.group}: group skipped ({group.error})")
        lines.append(f"Total projects: {self.total_projects}")
        lines.append(f"Cloned: {self.cloned}")
        lines.append(f"Updated: {self.updated}")
        lines.append(f"Skipped: {self.skipped}")
        lines.append(f"Failed: {self.failed}")
        lines.append(f"Failed groups: {len(self.failed_groups)}")
        return lines

# reconciliation/auditor.py
"""
Reconciliation auditor: runs the invariant checks and collects findings.

Usage:
    from reconciliation.auditor import run_audit

    report = run_audit()
    if not report.ok:
        for finding in report.errors:
            print(finding.message)

    # Subset of checks
    report = run_audit(checks=["balance", "trial_balance"])

The auditor only reads. Checks run one after another outside any
transaction, so no row locks are taken and writers are never blocked.
A check that raises is logged and reported as an error finding; the
remaining checks still run. A store outage aborts the run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from django.db import InterfaceError, OperationalError
from django.utils import timezone

from accounting.exceptions import LedgerValidationError
from reconciliation.checks import CHECKS, ERROR, WARNING, Finding

logger = logging.getLogger(__name__)


@dataclass
class AuditReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    checks_run: List[str] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == ERROR]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def for_check(self, name: str) -> List[Finding]:
        return [f for f in self.findings if f.check == name]

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "checks_run": self.checks_run,
            "ok": self.ok,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
        }


def _select(checks: Optional[Iterable[str]]) -> List[str]:
    if checks is None:
        return list(CHECKS)
    names = list(checks)
    unknown = sorted(set(names) - set(CHECKS))
    if unknown:
        raise LedgerValidationError(
            f"Unknown check(s): {', '.join(unknown)}.",
            details={"unknown": unknown, "available": list(CHECKS)},
        )
    return names


def run_audit(checks: Optional[Iterable[str]] = None) -> AuditReport:
    """
    Run the selected checks (all by default) and return an AuditReport.

    Raises LedgerValidationError for an unknown check name; violations in
    the ledger are never raised, only reported.
    """
    names = _select(checks)
    report = AuditReport(started_at=timezone.now())

    for name in names:
        try:
            findings = CHECKS[name]()
        except (OperationalError, InterfaceError):
            raise
        except Exception as exc:
            logger.exception("Reconciliation check %s crashed", name, extra={"check": name})
            findings = [Finding(
                check=name,
                severity=ERROR,
                message=f"Check {name} could not complete: {exc}",
                details={"exception": type(exc).__name__},
            )]

        for finding in findings:
            log = logger.error if finding.is_error else logger.warning
            log("%s: %s", name, finding.message, extra={"check": name, "finding": finding.to_dict()})

        report.checks_run.append(name)
        report.findings.extend(findings)

    report.finished_at = timezone.now()
    logger.info(
        "Ledger audit finished: %s checks, %s errors, %s warnings",
        len(report.checks_run), len(report.errors), len(report.warnings),
        extra={"ok": report.ok},
    )
    return report

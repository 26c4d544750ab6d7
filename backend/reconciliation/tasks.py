"""
Celery tasks for the reconciliation sweep.

Tasks:
- run_ledger_audit: run the invariant checks and return the report

Usage:
    from reconciliation.tasks import run_ledger_audit
    run_ledger_audit.delay()

    # Scheduled nightly through CELERY_BEAT_SCHEDULE in ledgercore.settings
"""
import logging
from typing import Optional

from celery import shared_task
from django.db import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(OperationalError, InterfaceError),
    retry_backoff=True,
)
def run_ledger_audit(self, checks: Optional[list] = None) -> dict:
    """
    Run the reconciliation audit.

    Only store outages are retried; findings are returned, not raised.

    Args:
        checks: Optional list of check names (all checks by default)

    Returns:
        AuditReport.to_dict()
    """
    from reconciliation.auditor import run_audit

    logger.info(f"Starting ledger audit (attempt {self.request.retries + 1})")

    report = run_audit(checks)

    logger.info(
        f"Ledger audit complete: {len(report.errors)} errors, "
        f"{len(report.warnings)} warnings"
    )
    return report.to_dict()

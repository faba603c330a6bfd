"""
APScheduler job runner for the two polling loops.

Dispatch (inbound folder -> Jakamo) and reconciliation (Jakamo response
queue -> responses folder) run as separate interval jobs. Each loop waits
its full interval after a pass ends before starting the next one. Each job
body is a fault barrier: an exception from a pass is logged and the
schedule continues.
"""

import threading
from datetime import datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jakamo_connector.config import get_settings
from jakamo_connector.core.folders import FolderSet
from jakamo_connector.core.logging import get_logger
from jakamo_connector.processors import (
    BaseProcessor,
    DispatchProcessor,
    ReconciliationProcessor,
)
from jakamo_connector.services.base import BasePurchaseOrderClient

log = get_logger(__name__)

DISPATCH_JOB_ID = "dispatch_orders"
RECONCILE_JOB_ID = "reconcile_responses"

# Global scheduler instance
_scheduler: BackgroundScheduler | None = None

# Cancellation signal shared by both loops
_stop_event = threading.Event()


def run_pass(job: str, processor: BaseProcessor) -> dict | None:
    """
    Run one pass of a processor, never letting an exception escape.

    Returns:
        The pass statistics, or None when the pass raised.
    """
    if _stop_event.is_set():
        return None

    log.debug("scheduled_job_starting", job=job)
    try:
        stats = processor.process()
    except Exception:
        log.exception("scheduled_job_error", job=job)
        return None

    log.debug("scheduled_job_complete", job=job, **stats)
    return stats


def _run_scheduled(
    job_id: str,
    processor: BaseProcessor,
    interval_seconds: int,
    scheduler: BackgroundScheduler,
) -> None:
    """Job body: one pass, then the next one a full interval after it ended."""
    try:
        run_pass(job_id, processor)
    finally:
        _schedule_next_pass(scheduler, job_id, interval_seconds)


def _schedule_next_pass(scheduler: BackgroundScheduler, job_id: str, interval_seconds: int) -> None:
    if _stop_event.is_set():
        return

    next_run_time = datetime.now() + timedelta(seconds=interval_seconds)
    try:
        scheduler.modify_job(job_id, next_run_time=next_run_time)
    except JobLookupError:
        log.warning("scheduled_job_missing", job=job_id)
        return
    log.debug("scheduled_job_next_run", job=job_id, next_run_time=next_run_time.isoformat())


def _add_interval_job(
    scheduler: BackgroundScheduler,
    job_id: str,
    name: str,
    processor: BaseProcessor,
    interval_seconds: int,
) -> None:
    scheduler.add_job(
        _run_scheduled,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[job_id, processor, interval_seconds],
        kwargs={"scheduler": scheduler},
        id=job_id,
        name=name,
        # At most one pass per folder at a time; _run_scheduled moves the next
        # run to a full interval after the pass ends
        max_instances=1,
        coalesce=True,
        misfire_grace_time=None,
        next_run_time=datetime.now(),
        replace_existing=True,
    )


def start_scheduler(
    client: BasePurchaseOrderClient,
    folders: FolderSet | None = None,
    inbound_interval: int | None = None,
    response_interval: int | None = None,
) -> BackgroundScheduler:
    """
    Start the dispatch and reconciliation jobs.

    Both jobs run once right away, then every configured interval.

    Args:
        client: Purchase-order client shared by both jobs
        folders: Folder set (defaults to the configured folders)
        inbound_interval: Seconds between dispatch passes
        response_interval: Seconds between reconciliation passes

    Returns:
        The scheduler instance
    """
    global _scheduler

    if _scheduler is not None:
        log.warning("scheduler_already_running")
        return _scheduler

    folders = folders or FolderSet.from_settings(get_settings())
    inbound_interval = inbound_interval or get_settings().polling_inbound_check_interval
    response_interval = response_interval or get_settings().polling_response_check_interval

    _stop_event.clear()
    _scheduler = BackgroundScheduler()

    _add_interval_job(
        _scheduler,
        DISPATCH_JOB_ID,
        "Send inbound orders to Jakamo",
        DispatchProcessor(client, folders, _stop_event),
        inbound_interval,
    )
    _add_interval_job(
        _scheduler,
        RECONCILE_JOB_ID,
        "Fetch order responses from Jakamo",
        ReconciliationProcessor(client, folders, _stop_event),
        response_interval,
    )

    _scheduler.start()
    log.info(
        "scheduler_started",
        inbound_interval_seconds=inbound_interval,
        response_interval_seconds=response_interval,
    )

    return _scheduler


def stop_scheduler(wait: bool = True) -> None:
    """
    Stop both jobs.

    Sets the shared stop event so running passes end after their current
    item, then shuts the scheduler down, joining in-flight passes when
    wait is True.
    """
    global _scheduler

    _stop_event.set()
    if _scheduler is not None:
        if _scheduler.running:
            _scheduler.shutdown(wait=wait)
        _scheduler = None
        log.info("scheduler_stopped")


def get_scheduler() -> BackgroundScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler


def get_stop_event() -> threading.Event:
    """The cancellation signal observed by running passes."""
    return _stop_event


def run_now(
    client: BasePurchaseOrderClient,
    folders: FolderSet | None = None,
) -> dict[str, dict | None]:
    """Run one dispatch pass and one reconciliation pass in the calling thread."""
    folders = folders or FolderSet.from_settings(get_settings())
    _stop_event.clear()
    return {
        DISPATCH_JOB_ID: run_pass(DISPATCH_JOB_ID, DispatchProcessor(client, folders, _stop_event)),
        RECONCILE_JOB_ID: run_pass(
            RECONCILE_JOB_ID, ReconciliationProcessor(client, folders, _stop_event)
        ),
    }

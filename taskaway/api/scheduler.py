"""
Scheduler API endpoints.

Operational surface for the daily sweeps: status, start, stop, manual trigger
and a per-template preview of the generation decision.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from taskaway.api.deps import RecurrenceEvaluator, SchedulerDriverDep, TaskRepo
from taskaway.core.exceptions import SchedulerError
from taskaway.core.logger import setup_logger
from taskaway.models.scheduler import GenerationDecision, SchedulerActionResponse, SchedulerStatus

logger = setup_logger(__name__)

router = APIRouter()


@router.get("/status", response_model=SchedulerStatus)
async def get_scheduler_status(driver: SchedulerDriverDep) -> SchedulerStatus:
    """Get the current status of the scheduler."""
    return driver.status()


@router.post("/start", response_model=SchedulerActionResponse)
async def start_scheduler(driver: SchedulerDriverDep) -> SchedulerActionResponse:
    """Start (or restart) the daily timer."""
    await driver.start()
    return SchedulerActionResponse(success=True, message="Scheduler started successfully")


@router.post("/stop", response_model=SchedulerActionResponse)
async def stop_scheduler(driver: SchedulerDriverDep) -> SchedulerActionResponse:
    """Stop the daily timer."""
    await driver.stop()
    return SchedulerActionResponse(success=True, message="Scheduler stopped successfully")


@router.post("/trigger", response_model=SchedulerActionResponse)
async def trigger_scheduler(driver: SchedulerDriverDep) -> SchedulerActionResponse:
    """Run recurring task processing and auto-close now and wait for both."""
    logger.info("Manual trigger requested for recurring task processing")
    try:
        result = await driver.trigger_now()
    except SchedulerError as exc:
        logger.error(f"Error triggering scheduler: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to trigger recurring task processing: {exc.message}",
        ) from exc
    return SchedulerActionResponse(
        success=True,
        message="Recurring task processing triggered successfully",
        result=result,
    )


@router.get("/templates/{template_id}/preview", response_model=GenerationDecision)
async def preview_template(
    template_id: UUID,
    repo: TaskRepo,
    evaluator: RecurrenceEvaluator,
) -> GenerationDecision:
    """Show whether a recurring template would generate an instance right now."""
    template = await repo.get(template_id)
    if template is None or not template.is_template:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recurring task {template_id} not found",
        )
    return await evaluator.explain(template)

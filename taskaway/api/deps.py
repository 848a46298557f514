"""
API dependencies.

Services are created in the application lifespan and kept on app.state;
these helpers hand them to route handlers.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from taskaway.interfaces.task_repository import ITaskRepository
from taskaway.services.composition import SchedulerServices
from taskaway.services.recurrence_policy import RecurrencePolicyEvaluator
from taskaway.services.scheduler_driver import SchedulerDriver


def get_scheduler_services(request: Request) -> SchedulerServices:
    """Get the services built at startup."""
    services = getattr(request.app.state, "scheduler_services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scheduler services are not initialized",
        )
    return services


def get_scheduler_driver(
    services: Annotated[SchedulerServices, Depends(get_scheduler_services)],
) -> SchedulerDriver:
    return services.driver


def get_task_repository(
    services: Annotated[SchedulerServices, Depends(get_scheduler_services)],
) -> ITaskRepository:
    return services.task_repo


def get_recurrence_evaluator(
    services: Annotated[SchedulerServices, Depends(get_scheduler_services)],
) -> RecurrencePolicyEvaluator:
    return services.evaluator


SchedulerDriverDep = Annotated[SchedulerDriver, Depends(get_scheduler_driver)]
TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
RecurrenceEvaluator = Annotated[RecurrencePolicyEvaluator, Depends(get_recurrence_evaluator)]

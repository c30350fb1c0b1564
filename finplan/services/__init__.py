"""Services coordinating the simulation core."""

from .planning_service import PlanningService, PlanReport, PlanRequest

__all__ = ["PlanningService", "PlanReport", "PlanRequest"]

"""Ports - interfaces/protocols for external dependencies."""

from .plan_store import PlannerStore, Settings

__all__ = [
    "PlannerStore",
    "Settings",
]

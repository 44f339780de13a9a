"""Dependency injection for API routes."""

from typing import Callable

from ..agents.prompts import AVAILABLE_AGENT_TYPES
from ..agents.routine_agent import RoutineAgent, get_routine_agent
from ..db.repositories.program_repository import ProgramRepository, get_program_repository
from ..db.repositories.session_repository import SessionRepository, get_session_repository
from ..exceptions import AgentNotAvailableError
from ..services.billing_service import BillingService, get_billing_service
from ..services.usage_service import UsageService, get_usage_service
from .middleware.auth import CurrentUser, get_current_user


AgentFactory = Callable[[str], RoutineAgent]


def get_agent_factory() -> AgentFactory:
    """Resolve an agent by type.

    The factory raises AgentNotAvailableError for unknown types before any
    model client is constructed.
    """
    def factory(agent_type: str) -> RoutineAgent:
        if agent_type not in AVAILABLE_AGENT_TYPES:
            raise AgentNotAvailableError(agent_type)
        return get_routine_agent()

    return factory


def get_usage() -> UsageService:
    return get_usage_service()


def get_programs() -> ProgramRepository:
    return get_program_repository()


def get_sessions() -> SessionRepository:
    return get_session_repository()


def get_billing() -> BillingService:
    return get_billing_service()


__all__ = [
    "AgentFactory",
    "CurrentUser",
    "get_current_user",
    "get_agent_factory",
    "get_usage",
    "get_programs",
    "get_sessions",
    "get_billing",
]

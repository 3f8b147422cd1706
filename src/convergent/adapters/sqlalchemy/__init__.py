"""SQLAlchemy adapter package for the convergence engine."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry
from .repositories import SqlAlchemyContextGraphRepository, SqlAlchemyDiagnosticRunRepository
from .unit_of_work import (
    SqlAlchemyConvergenceUnitOfWork,
    StartupError,
    configured_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyContextGraphRepository",
    "SqlAlchemyConvergenceUnitOfWork",
    "SqlAlchemyDiagnosticRunRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]

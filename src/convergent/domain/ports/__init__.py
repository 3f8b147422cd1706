"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ContextGraphRepository, DiagnosticRunRepository
from .unit_of_work import (
    ConvergenceRepositories,
    ConvergenceUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ContextGraphRepository",
    "ConvergenceRepositories",
    "ConvergenceUnitOfWork",
    "DiagnosticRunRepository",
    "RepositoryCollection",
    "UnitOfWork",
]

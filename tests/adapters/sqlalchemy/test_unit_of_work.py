from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from convergent.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConvergenceUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from convergent.domain.model import SourceKind, ToolId
from tests.helpers.runs import brand_payload, make_run

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyConvergenceUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_creates_schema_from_uri() -> None:
    startup(database_uri="sqlite+pysqlite:///:memory:")

    engine = configured_engine()
    assert engine is not None
    assert {"diagnostic_run", "heavy_run", "context_graph", "context_field"} <= set(
        inspect(engine).get_table_names()
    )


def test_shutdown_resets_state(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    shutdown()

    assert configured_engine() is None
    assert not is_started()


def test_repositories_require_an_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyConvergenceUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_commit_persists_runs(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyConvergenceUnitOfWork() as uow:
        uow.repositories.runs.add(make_run(ToolId.BRAND_LAB, brand_payload(positioning="x")))
        uow.commit()

    with SqlAlchemyConvergenceUnitOfWork() as uow:
        runs = uow.repositories.runs.list_runs(
            "acme", ToolId.BRAND_LAB, limit=5, kind=SourceKind.DIAGNOSTIC_RUNS
        )

    assert [run.id for run in runs] == ["run-1"]


def test_exception_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyConvergenceUnitOfWork() as uow:
        uow.repositories.runs.add(make_run(ToolId.BRAND_LAB, brand_payload(positioning="x")))
        raise RuntimeError("boom")

    with SqlAlchemyConvergenceUnitOfWork() as uow:
        graph = uow.repositories.graphs.get_graph("acme")
        runs = uow.repositories.runs.list_runs(
            "acme", ToolId.BRAND_LAB, limit=5, kind=SourceKind.DIAGNOSTIC_RUNS
        )

    assert runs == []
    assert graph.fields == {}
    assert graph.revision_id is None

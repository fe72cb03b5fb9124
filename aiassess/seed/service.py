import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlmodel import Session, SQLModel

from aiassess import crud
from aiassess.core.config import settings
from aiassess.models import (
    Domain,
    DomainCreate,
    Framework,
    FrameworkCreate,
    Question,
    QuestionCreate,
    Subcategory,
    SubcategoryCreate,
)
from aiassess.seed.fixtures import FIXTURE_NAMES, load_fixture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedTable:
    name: str
    create_model: type[SQLModel]
    table_model: type[SQLModel]
    success_message: str


SEED_TABLES: dict[str, SeedTable] = {
    "frameworks": SeedTable("frameworks", FrameworkCreate, Framework, "Frameworks seeded successfully"),
    "domains": SeedTable("domains", DomainCreate, Domain, "Domains seeded successfully"),
    "subcategories": SeedTable(
        "subcategories", SubcategoryCreate, Subcategory, "Subcategories seeded successfully"
    ),
    "questions": SeedTable("questions", QuestionCreate, Question, "{count} questions seeded successfully"),
}

SEED_ALL_ACTION = "seed-all"
SEED_ACTIONS: dict[str, str] = {f"seed-{name}": name for name in FIXTURE_NAMES}
VALID_ACTIONS: list[str] = [*SEED_ACTIONS, SEED_ALL_ACTION]


class SeedError(Exception):
    pass


class UnknownSeedAction(ValueError):
    def __init__(self, action: str | None):
        super().__init__(f"Invalid action. Valid actions: {', '.join(VALID_ACTIONS)}")
        self.action = action


class SeedRequest(BaseModel):
    action: str | None = None
    data: dict[str, list[dict[str, Any]]] | None = None


class SeedResult(BaseModel):
    success: bool = True
    message: str
    count: int | None = None
    counts: dict[str, int] | None = None


class SeedStatus(BaseModel):
    counts: dict[str, int]
    is_empty: bool


def _rows_for(table: str, data: dict[str, list[dict[str, Any]]] | None) -> list[dict[str, Any]]:
    if data and data.get(table) is not None:
        return data[table]
    return load_fixture(table)


def seed_table(
    *,
    session: Session,
    table: str,
    rows: list[dict[str, Any]],
    batch_size: int | None = None,
) -> int:
    """
    Insert `rows` into `table` in committed batches.

    Rows are always inserted, never matched against existing ones. The first
    failing batch is rolled back and raises SeedError; batches committed
    before it stay in place.
    """
    target = SEED_TABLES[table]
    size = max(1, batch_size or settings.SEED_BATCH_SIZE)
    inserted = 0

    for start in range(0, len(rows), size):
        batch = rows[start:start + size]
        try:
            records = [target.table_model.model_validate(target.create_model.model_validate(row)) for row in batch]
            session.add_all(records)
            session.commit()
        except Exception as exc:
            logger.error("Seeding %s failed at row %d: %s", table, start, exc)
            try:
                session.rollback()
            except Exception as rollback_exc:
                logger.warning("Session rollback failed: %s", rollback_exc)
            raise SeedError(str(exc)) from exc
        inserted += len(batch)
        logger.info("Seeded %d/%d %s", inserted, len(rows), table)

    return inserted


def run_seed_action(
    *,
    session: Session,
    action: str | None,
    data: dict[str, list[dict[str, Any]]] | None = None,
) -> SeedResult:
    if action == SEED_ALL_ACTION:
        counts = {table: 0 for table in FIXTURE_NAMES}
        for event in iter_seed_all(session=session, data=data):
            if event["status"] == "table_done":
                counts[event["table"]] = event["count"]
        return SeedResult(message="All data seeded successfully", counts=counts)

    if action not in SEED_ACTIONS:
        raise UnknownSeedAction(action)

    table = SEED_ACTIONS[action]
    count = seed_table(session=session, table=table, rows=_rows_for(table, data))
    return SeedResult(message=SEED_TABLES[table].success_message.format(count=count), count=count)


def iter_seed_all(
    *,
    session: Session,
    data: dict[str, list[dict[str, Any]]] | None = None,
) -> Iterator[dict[str, Any]]:
    """Seed every table in dependency order, yielding a progress event per step."""
    rows_by_table = {table: _rows_for(table, data) for table in FIXTURE_NAMES}
    yield {"status": "started", "tables": {table: len(rows) for table, rows in rows_by_table.items()}}

    for table, rows in rows_by_table.items():
        count = seed_table(session=session, table=table, rows=rows)
        yield {"status": "table_done", "table": table, "count": count}

    yield {"status": "completed", "message": "All data seeded successfully"}


def get_seed_status(*, session: Session) -> SeedStatus:
    counts = {table: crud.count_rows(session=session, model=target.table_model) for table, target in SEED_TABLES.items()}
    return SeedStatus(counts=counts, is_empty=not any(counts.values()))

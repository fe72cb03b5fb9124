import json
import logging
from collections.abc import Iterator
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlmodel import Session
from sse_starlette.sse import EventSourceResponse

from aiassess.api.deps import SeedAdmin, SessionDep
from aiassess.seed.service import (
    SeedRequest,
    SeedStatus,
    UnknownSeedAction,
    get_seed_status,
    iter_seed_all,
    run_seed_action,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/")
def seed_reference_data(payload: SeedRequest, session: SessionDep, current_user: SeedAdmin) -> Any:
    """
    Load taxonomy and question fixtures into the reference tables.

    Rows are inserted unconditionally: seeding a populated table twice leaves
    duplicates behind.
    """
    try:
        result = run_seed_action(session=session, action=payload.action, data=payload.data)
    except UnknownSeedAction as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.error("Seeding failed for action %s: %s", payload.action, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    logger.info("Seed action %s completed by %s", payload.action, current_user.id)
    return result.model_dump(exclude_none=True)


def _seed_progress(session: Session, data: dict | None) -> Iterator[str]:
    # sse-starlette iterates sync generators in a threadpool.
    try:
        for event in iter_seed_all(session=session, data=data):
            yield json.dumps(event)
    except Exception as exc:
        logger.error("Streaming seed failed: %s", exc)
        yield json.dumps({"status": "error", "message": str(exc)})


@router.post("/stream")
async def seed_reference_data_stream(
    session: SessionDep,
    current_user: SeedAdmin,
    payload: SeedRequest | None = None,
):
    """Seed every table and stream progress via SSE."""
    return EventSourceResponse(_seed_progress(session, payload.data if payload else None))


@router.get("/status", response_model=SeedStatus)
def read_seed_status(session: SessionDep, current_user: SeedAdmin) -> Any:
    return get_seed_status(session=session)

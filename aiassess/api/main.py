from fastapi import APIRouter

from aiassess.api.routes import assessment, assistant, audit, dashboard, frameworks, seed, utils

api_router = APIRouter()
api_router.include_router(utils.router, tags=["utils"])
api_router.include_router(audit.router, prefix="/audit-log", tags=["audit-log"])
api_router.include_router(seed.router, prefix="/seed", tags=["seed"])
api_router.include_router(assistant.router, prefix="/assistant", tags=["assistant"])
api_router.include_router(frameworks.router, prefix="/frameworks", tags=["frameworks"])
api_router.include_router(assessment.router, prefix="/assessment", tags=["assessment"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

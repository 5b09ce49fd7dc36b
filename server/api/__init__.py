"""FastAPI router aggregation."""

from fastapi import APIRouter

from api.auth import router as auth_router
from api.dump_runs import router as dump_runs_router
from api.messages import router as messages_router

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(dump_runs_router, prefix="/dump-runs", tags=["dump-runs"])
api_router.include_router(messages_router, prefix="/dump-runs", tags=["messages"])

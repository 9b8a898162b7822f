from fastapi import APIRouter

from src.leadflow.api.v1 import engine, enrollments, signals, workflows

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(engine.router)
api_router.include_router(signals.router)
api_router.include_router(workflows.router)
api_router.include_router(enrollments.router)

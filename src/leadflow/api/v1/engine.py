"""Engine entry points, called by an external scheduler."""

from datetime import UTC

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.leadflow.api.dependencies import EngineKey, OrchestratorDep
from src.leadflow.schemas.engine import EnrollSummary, RunRequest, RunSummary

router = APIRouter(prefix="/engine", tags=["engine"], dependencies=[EngineKey])


@router.post(
    "/run",
    response_model=RunSummary,
    summary="Run the engine once",
    description=(
        "Enroll matching leads, process pending signals, sweep for inactive "
        "leads, then execute due steps. Safe to call repeatedly."
    ),
    responses={
        200: {"description": "Run summary, including per-item errors"},
        401: {"description": "Invalid or missing engine key"},
        503: {"description": "Store unavailable for every phase"},
    },
)
async def run_engine(
    orchestrator: OrchestratorDep,
    request: RunRequest | None = None,
) -> RunSummary | JSONResponse:
    now = request.now if request else None
    if now is not None and now.tzinfo is not None:
        now = now.astimezone(UTC).replace(tzinfo=None)

    summary = await orchestrator.run(now, trigger="api")
    if summary.store_unavailable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=summary.model_dump(mode="json"),
        )
    return summary


@router.post(
    "/enroll",
    response_model=EnrollSummary,
    summary="Enroll matching leads",
    description="Run only the trigger-matching enrollment pass.",
)
async def enroll_leads(orchestrator: OrchestratorDep) -> EnrollSummary:
    return await orchestrator.enroll_only()

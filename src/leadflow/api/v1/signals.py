"""Provider webhook ingestion."""

from fastapi import APIRouter, status

from src.leadflow.api.dependencies import EngineKey, SignalProcessorDep
from src.leadflow.schemas.engine import SignalAccepted, SignalEvent

router = APIRouter(prefix="/signals", tags=["signals"], dependencies=[EngineKey])


@router.post(
    "",
    response_model=SignalAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a message event",
    description=(
        "Store a delivery/engagement event from the message provider. Events "
        "for unknown messages are acknowledged with matched=false."
    ),
)
async def record_signal(event: SignalEvent, processor: SignalProcessorDep) -> SignalAccepted:
    return await processor.ingest(event)

"""Relay submission and status endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from forward_relay.api.dependencies import PipelineDep
from forward_relay.schemas import RelayErrorResponse, RelayStatusResponse, RelaySuccessResponse
from forward_relay.services.errors import status_for
from forward_relay.services.outcomes import Confirmed, Failed, RelayOutcome

router = APIRouter(prefix="/relay", tags=["relay"])


def outcome_response(outcome: RelayOutcome) -> JSONResponse:
    """Render a terminal outcome as the client-facing JSON body."""
    if isinstance(outcome, Confirmed):
        body = RelaySuccessResponse(
            tx_hash=outcome.tx_hash,
            transaction_hash=outcome.tx_hash,
            block_number=outcome.block_number,
            gas_used=str(outcome.fee_used),
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(by_alias=True))

    error = RelayErrorResponse(
        error=outcome.kind.value,
        message=outcome.message,
        details=outcome.detail,
        tx_hash=outcome.tx_hash if isinstance(outcome, Failed) else None,
    )
    return JSONResponse(
        status_code=status_for(outcome.kind),
        content=error.model_dump(by_alias=True, exclude_none=True),
    )


@router.post("")
async def relay(request: Request, pipeline: PipelineDep) -> JSONResponse:
    """Validate, submit and confirm a signed Forward authorization.

    The raw body is handed to the pipeline so malformed JSON is reported in
    the relay's own error format rather than as a framework 422.
    """
    body = await request.body()
    outcome = await pipeline.relay(body)
    return outcome_response(outcome)


@router.get("/{tx_hash}", response_model=RelayStatusResponse, response_model_by_alias=True)
async def relay_status(tx_hash: str, pipeline: PipelineDep) -> RelayStatusResponse:
    """Return the relay's latest knowledge of a submitted transaction."""
    entry = pipeline.reconciler.status(tx_hash) if pipeline.reconciler else None
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown transaction")
    return RelayStatusResponse(
        tx_hash=entry.tx_hash,
        state=entry.state.value,
        block_number=entry.block_number,
        gas_used=str(entry.gas_used) if entry.gas_used is not None else None,
        updated_at=int(entry.updated_at),
    )

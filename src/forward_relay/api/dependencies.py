"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from forward_relay.services.pipeline import RelayPipeline


def get_pipeline(request: Request) -> RelayPipeline:
    """Return the pipeline wired at startup.

    Raises:
        HTTPException: 503 if the app has not finished starting.
    """
    pipeline: RelayPipeline | None = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Relay is not ready",
        )
    return pipeline


PipelineDep = Annotated[RelayPipeline, Depends(get_pipeline)]

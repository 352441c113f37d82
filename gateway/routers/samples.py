"""
gateway/routers/samples.py

Sample ingestion endpoints.
Devices push raw motion samples and report their motion permission outcome.
"""

import structlog
from fastapi import APIRouter, Request

from detection.schemas import RawSample
from gateway.schemas import AuthorizationUpdate

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/samples", tags=["samples"])


@router.post("")
async def receive_samples(samples: list[RawSample], request: Request) -> dict:
    """
    Receive a batch of motion samples from the user's device.

    Samples are published in timestamp order; the detection engine picks
    them up on its own event loop turn.
    """
    source = request.app.state.source
    for sample in sorted(samples, key=lambda s: s.timestamp):
        source.publish(sample)

    logger.debug("samples_received", count=len(samples))
    return {"status": "received", "count": len(samples)}


@router.post("/authorization")
async def update_authorization(update: AuthorizationUpdate, request: Request) -> dict:
    """Record the motion permission outcome reported by the device."""
    request.app.state.source.set_authorization(update.status)
    return {"status": update.status.value}

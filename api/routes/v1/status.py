"""
api/routes/v1/status.py -- Service status.

Routes:
  GET /api/v1/status   -- database health; the server version only for
                          callers holding read:status:all

No rate limit applied -- monitoring systems poll this endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import StatusResponse
from auth.authorization import filter_output
from auth.dependencies import get_caller
from auth.features import Feature
from auth.models import AnonymousUser, User
from core.database import get_status

router = APIRouter()


@router.get("/status", response_model=StatusResponse, response_model_exclude_none=True)
def status(
    request: Request,
    caller: User | AnonymousUser = Depends(get_caller),
) -> dict:
    raw = get_status(request.app.state.engine, now=request.app.state.store.clock())
    return filter_output(caller, Feature.READ_STATUS, raw)

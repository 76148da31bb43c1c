"""
api/routes/v1/migrations.py -- Schema migration endpoints (operators only).

Routes:
  GET  /api/v1/migrations   -- dry run: list pending migrations
  POST /api/v1/migrations   -- apply pending migrations; 201 if any ran, else 200

Neither feature is granted by default; give it to an operator account with
`python main.py grant <username> read:migration create:migration`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import MigrationResponse
from auth.authorization import filter_output
from auth.dependencies import can_request
from auth.features import Feature
from auth.models import User
from core.migrator import list_pending, run_pending

router = APIRouter()


@router.get("/migrations", response_model=list[MigrationResponse])
def list_migrations(
    request: Request,
    caller: User = Depends(can_request(Feature.READ_MIGRATION)),
) -> list[dict]:
    pending = list_pending(request.app.state.engine)
    return filter_output(caller, Feature.READ_MIGRATION, pending)


@router.post("/migrations", response_model=list[MigrationResponse])
def run_migrations(
    request: Request,
    response: Response,
    caller: User = Depends(can_request(Feature.CREATE_MIGRATION)),
) -> list[dict]:
    applied = run_pending(request.app.state.engine)
    response.status_code = 201 if applied else 200
    return filter_output(caller, Feature.CREATE_MIGRATION, applied)

"""
api/routes/v1/activations.py -- Account activation.

Routes:
  PATCH /api/v1/activations/{token_id}   -- consume the token, promote its owner

The token id is the secret from the activation e-mail. Unknown, expired,
already used and malformed ids all answer the same 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import ActivationTokenResponse
from auth import activation
from auth.authorization import filter_output
from auth.dependencies import can_request, get_store
from auth.features import Feature
from auth.models import AnonymousUser, User

router = APIRouter()


@router.patch("/activations/{token_id}", response_model=ActivationTokenResponse)
def activate_account(
    request: Request,
    token_id: str,
    caller: User | AnonymousUser = Depends(can_request(Feature.READ_ACTIVATION_TOKEN)),
) -> dict:
    token = activation.activate(get_store(request), token_id)
    return filter_output(caller, Feature.READ_ACTIVATION_TOKEN, token)

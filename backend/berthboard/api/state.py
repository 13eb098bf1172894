"""Per-application service instances and their FastAPI dependencies.

The vessel store, reference data and auth service live on
``app.state``; they are created in the app lifespan (or lazily on first
use) and handed to routes through ``Depends`` so tests can override them.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from berthboard.modules.auth_service import AuthError, AuthService
from berthboard.modules.persistence import VesselSlot, build_slot
from berthboard.modules.reference_data import ReferenceData, get_reference_data
from berthboard.modules.vessel_store import VesselStore
from berthboard.schemas.reference import User

logger = logging.getLogger(__name__)


def build_store(reference: Optional[ReferenceData] = None, slot: Optional[VesselSlot] = None) -> VesselStore:
    """Wire a store to the configured persistence slot and reference data."""
    reference = reference or get_reference_data()
    return VesselStore(
        slot or build_slot(),
        terminals=reference.terminals,
        berths=reference.berths,
    )


def get_reference(request: Request) -> ReferenceData:
    reference = getattr(request.app.state, "reference", None)
    if reference is None:
        reference = request.app.state.reference = get_reference_data()
    return reference


def get_store(request: Request) -> VesselStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = request.app.state.store = build_store(get_reference(request))
    return store


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = request.app.state.auth_service = AuthService(get_reference(request))
    return service


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_token(authorization: Optional[str] = Header(None)) -> str:
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def get_current_user(
    token: str = Depends(get_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    try:
        return auth.validate_token(token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


def get_optional_user(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """Session user when a valid bearer token is sent, otherwise None."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    try:
        return auth.validate_token(token)
    except AuthError as e:
        logger.debug("Ignoring invalid token on optional-auth route: %s", e)
        return None

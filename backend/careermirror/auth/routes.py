"""Authentication and account routes."""

from fastapi import APIRouter, Depends, Request, Response

from ..analytics.service import client_ip
from ..config import settings
from ..dependencies import get_backend, get_token
from ..rate_limit import limiter
from ..storage.interfaces import Backend
from . import service
from .schemas import AuthResponse, LoginRequest, PlanUpgradeRequest, ProfileUpdate, SignupRequest

router = APIRouter(tags=["auth"])


def _user_body(user) -> dict:
    return user.model_dump(mode="json", by_alias=True)


@router.post("/auth/signup", status_code=201)
@limiter.limit(settings.rate_limit_auth)
def signup(
    request: Request,
    payload: SignupRequest,
    backend: Backend = Depends(get_backend),
):
    user, token = service.signup(backend, payload.name, payload.email, payload.password, ip=client_ip(request))
    return AuthResponse(user=user, token=token).model_dump(mode="json", by_alias=True)


@router.post("/auth/login")
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    payload: LoginRequest,
    backend: Backend = Depends(get_backend),
):
    user, token = service.login(backend, payload.email, payload.password, ip=client_ip(request))
    return AuthResponse(user=user, token=token).model_dump(mode="json", by_alias=True)


@router.post("/auth/logout", status_code=204)
def logout(token: str | None = Depends(get_token), backend: Backend = Depends(get_backend)):
    service.logout(backend, token)
    return Response(status_code=204)


@router.get("/auth/me")
def me(token: str | None = Depends(get_token), backend: Backend = Depends(get_backend)):
    return _user_body(service.current_user(backend, token))


@router.patch("/users/me")
def update_me(
    payload: ProfileUpdate,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    user = service.update_profile(backend, token, payload.model_dump(exclude_unset=True))
    return _user_body(user)


@router.post("/users/me/plan")
def upgrade_plan(
    payload: PlanUpgradeRequest,
    token: str | None = Depends(get_token),
    backend: Backend = Depends(get_backend),
):
    return _user_body(service.upgrade_plan(backend, token, payload.plan))

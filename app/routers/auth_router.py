# /app/routers/auth_router.py

"""
This module defines the public-facing API for all authentication-related actions.

It includes endpoints for:
- Account registration (`/signup`)
- Signing in and receiving a bearer token (`/login`)
- Signing out (`/logout`) and refreshing the session (`/refresh`)
- Reading the sign-in page state (`/state`) and the current profile (`/me`)

The router is the presentation layer over `SessionCoordinator`: it calls the
coordinator, and turns failed results into HTTP errors.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.deps import get_current_workspace, get_optional_workspace, get_registry
from ..models.dashboard_model import AuthRenderState, AuthResponse, OperationResult
from ..models.session_model import LoginRequest, SignupRequest, UserInfo
from ..services.workspace_service import Workspace, WorkspaceRegistry

router = APIRouter()


def _raise_for(result: OperationResult, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
    if not result.success:
        raise HTTPException(status_code=status_code, detail=result.error)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED, summary="Create a Teacher Account")
async def signup(payload: SignupRequest, registry: WorkspaceRegistry = Depends(get_registry)):
    workspace = await registry.open()
    try:
        result = await workspace.coordinator.signup(
            payload.email, payload.password, payload.full_name, payload.school_name
        )
        _raise_for(result)
        session = workspace.coordinator.current_user
        return AuthResponse(
            access_token=session.access_token if session else None,
            state=workspace.coordinator.render_state(),
        )
    finally:
        # Registration does not sign in; an unbound workspace is not kept.
        if not workspace.coordinator.is_authenticated():
            await workspace.close()


@router.post("/login", response_model=AuthResponse, summary="Sign In")
async def login(payload: LoginRequest, registry: WorkspaceRegistry = Depends(get_registry)):
    workspace = await registry.open()
    result = await workspace.coordinator.login(payload.email, payload.password)
    if not result.success:
        await workspace.close()
        _raise_for(result)
    return AuthResponse(
        access_token=result.data.access_token,
        state=workspace.coordinator.render_state(),
    )


@router.post("/logout", response_model=AuthRenderState, summary="Sign Out")
async def logout(workspace: Workspace = Depends(get_current_workspace)):
    result = await workspace.coordinator.logout()
    _raise_for(result)
    return workspace.coordinator.render_state()


@router.post("/refresh", response_model=AuthResponse, summary="Extend the Current Session")
async def refresh(workspace: Workspace = Depends(get_current_workspace)):
    result = await workspace.coordinator.refresh()
    _raise_for(result, status.HTTP_401_UNAUTHORIZED)
    return AuthResponse(access_token=result.data.access_token, state=workspace.coordinator.render_state())


@router.get("/state", response_model=AuthRenderState, summary="Get Sign-In Page State")
async def auth_state(workspace: Optional[Workspace] = Depends(get_optional_workspace)):
    if workspace is None:
        return AuthRenderState(authenticated=False)
    return workspace.coordinator.render_state()


@router.get("/me", response_model=UserInfo, summary="Get the Signed-In Teacher")
async def read_current_user(workspace: Workspace = Depends(get_current_workspace)):
    return UserInfo.from_session(workspace.coordinator.current_user)

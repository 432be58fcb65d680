# /app/core/deps.py

"""
FastAPI dependencies that locate the caller's workspace from the
`Authorization: Bearer <token>` header.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..services.workspace_service import Workspace, WorkspaceRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.registry


async def get_optional_workspace(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> Optional[Workspace]:
    token = credentials.credentials if credentials else None
    return await registry.resolve(token)


async def get_current_workspace(
    workspace: Optional[Workspace] = Depends(get_optional_workspace),
) -> Workspace:
    """The signed-in caller's workspace; 401 when the token is missing or no longer valid."""
    if workspace is None or not workspace.coordinator.is_authenticated():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return workspace

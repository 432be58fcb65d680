# /app/routers/dashboard_router.py

"""
The dashboard page's API. Each endpoint performs one UI action on the
caller's `RecordSyncManager` and returns the render state the page should
draw next. Action outcomes travel inside the response (`ActionResponse`) so
the page can keep the modal open with its fields after a rejected save.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..core.deps import get_current_workspace, get_optional_workspace
from ..models.dashboard_model import (
    ActionResponse,
    ConfirmationDecision,
    DashboardRenderState,
    DashboardStats,
    OperationResult,
    Redirect,
)
from ..services.workspace_service import Workspace

router = APIRouter()


def _action(workspace: Workspace, result: OperationResult) -> ActionResponse:
    return ActionResponse(result=result, state=workspace.records.render_state())


@router.get(
    "",
    response_model=DashboardRenderState,
    summary="Load the Dashboard",
    description="Loads the roster on first use and returns everything the dashboard page draws.",
)
async def load_dashboard(workspace: Optional[Workspace] = Depends(get_optional_workspace)):
    if workspace is None:
        # No session: send the page back to sign-in without touching any data.
        return DashboardRenderState(redirect=Redirect(target="login"))
    if not workspace.records.initialized:
        await workspace.records.initialize()
    return workspace.records.render_state()


@router.get("/summary", response_model=DashboardStats, summary="Get Dashboard Summary")
async def get_dashboard_summary(workspace: Workspace = Depends(get_current_workspace)):
    if not workspace.records.initialized:
        await workspace.records.initialize()
    return workspace.records.compute_stats()


@router.post("/refresh", response_model=ActionResponse, summary="Reload the Roster")
async def refresh_roster(workspace: Workspace = Depends(get_current_workspace)):
    result = await workspace.records.refresh()
    return _action(workspace, result)


# --- Modal ---

@router.post("/modal/new", response_model=DashboardRenderState, summary="Open the Add Student Modal")
async def open_create_modal(workspace: Workspace = Depends(get_current_workspace)):
    workspace.records.begin_create()
    return workspace.records.render_state()


@router.post("/modal/edit/{student_id}", response_model=DashboardRenderState, summary="Open the Edit Student Modal")
async def open_edit_modal(student_id: str, workspace: Workspace = Depends(get_current_workspace)):
    if workspace.records.begin_edit(student_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Student with ID {student_id} not found")
    return workspace.records.render_state()


@router.post("/modal/close", response_model=DashboardRenderState, summary="Close the Student Modal")
async def close_modal(workspace: Workspace = Depends(get_current_workspace)):
    workspace.records.close_modal()
    return workspace.records.render_state()


@router.post("/modal/submit", response_model=ActionResponse, summary="Submit the Student Modal")
async def submit_modal(
    fields: Dict[str, Any] = Body(..., examples=[{"name": "Ann", "email": "a@x.com", "grade": "5"}]),
    workspace: Workspace = Depends(get_current_workspace),
):
    result = await workspace.records.handle_form_submit(fields)
    return _action(workspace, result)


# --- Confirmation Step ---

@router.post("/students/{student_id}/delete", response_model=DashboardRenderState, summary="Ask to Delete a Student")
async def request_delete(student_id: str, workspace: Workspace = Depends(get_current_workspace)):
    workspace.records.request_delete(student_id)
    return workspace.records.render_state()


@router.post("/logout", response_model=DashboardRenderState, summary="Ask to Sign Out")
async def request_logout(workspace: Workspace = Depends(get_current_workspace)):
    workspace.records.request_logout()
    return workspace.records.render_state()


@router.post("/confirmation", response_model=ActionResponse, summary="Answer the Pending Confirmation")
async def resolve_confirmation(
    payload: ConfirmationDecision,
    workspace: Workspace = Depends(get_current_workspace),
):
    if workspace.records.confirmation is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing is awaiting confirmation")
    result = await workspace.records.resolve_confirmation(payload.decision)
    return _action(workspace, result)

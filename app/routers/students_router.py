# /app/routers/students_router.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from ..core.deps import get_current_workspace
from ..models.dashboard_model import OperationResult
from ..models.student_model import Student, StudentBase, StudentForm
from ..services.workspace_service import Workspace

router = APIRouter()

ERROR_STATUS = {
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "session_missing": status.HTTP_401_UNAUTHORIZED,
    "session_expired": status.HTTP_401_UNAUTHORIZED,
}


def _raise_for(result: OperationResult, record_id: str = "") -> None:
    if result.success:
        return
    if result.error_code == "not_found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Student with ID {record_id} not found")
    if result.error_code in ERROR_STATUS:
        raise HTTPException(status_code=ERROR_STATUS[result.error_code], detail=result.error)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)


# --- STUDENT COLLECTION ENDPOINTS (/api/students) ---

@router.get("", response_model=List[Student], summary="List the Teacher's Students")
async def list_students(workspace: Workspace = Depends(get_current_workspace)):
    # A failed reload leaves the previous roster in place; it is still returned.
    await workspace.records.refresh()
    return workspace.records.students


@router.post("", response_model=List[Student], status_code=status.HTTP_201_CREATED, summary="Add a Student")
async def create_student(student_create: StudentBase, workspace: Workspace = Depends(get_current_workspace)):
    result = await workspace.records.save(StudentForm(**student_create.model_dump()))
    _raise_for(result)
    return result.data


@router.get("/export", summary="Export the Roster as CSV", response_class=StreamingResponse)
async def export_students_csv(workspace: Workspace = Depends(get_current_workspace)):
    await workspace.records.refresh()
    csv_string = workspace.records.export_csv()
    return StreamingResponse(
        iter([csv_string]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=students.csv"},
    )


# --- INDIVIDUAL STUDENT ENDPOINTS (/api/students/{student_id}) ---

@router.put("/{student_id}", response_model=List[Student], summary="Update a Student")
async def update_student(
    student_id: str,
    student_update: StudentBase,
    workspace: Workspace = Depends(get_current_workspace),
):
    result = await workspace.records.save(StudentForm(id=student_id, **student_update.model_dump()))
    _raise_for(result, student_id)
    return result.data


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a Student")
async def delete_student(
    student_id: str,
    confirm: bool = False,
    workspace: Workspace = Depends(get_current_workspace),
):
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deleting a student must be confirmed with ?confirm=true",
        )
    result = await workspace.records.delete(student_id)
    _raise_for(result, student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# /app/services/view_renderer.py

"""Pure functions that turn the student list into dashboard markup."""

from html import escape
from typing import Optional, Sequence

from ..models.student_model import Student

PLACEHOLDER = "--"

EMPTY_STATE_HTML = (
    '<div class="empty-state">'
    '<i class="fas fa-user-graduate"></i>'
    "<h3>No students yet</h3>"
    "<p>Add your first student to get started</p>"
    "</div>"
)

TABLE_HEADERS = ("Student", "Grade", "Subject", "Parent/Guardian", "Contact", "Actions")


def _text(value: Optional[str]) -> str:
    return escape(value) if value else PLACEHOLDER


def _avatar_initial(name: str) -> str:
    return escape(name[:1].upper()) if name else "?"


def render_student_row(student: Student) -> str:
    student_id = escape(student.id, quote=True)
    return (
        "<tr>"
        "<td>"
        '<div class="student-info">'
        f'<div class="student-avatar">{_avatar_initial(student.name)}</div>'
        '<div class="student-details">'
        f"<h4>{escape(student.name)}</h4>"
        f"<p>{escape(student.email)}</p>"
        "</div>"
        "</div>"
        "</td>"
        f"<td>{escape(student.grade)}</td>"
        f"<td>{_text(student.subject)}</td>"
        f"<td>{_text(student.parent)}</td>"
        f"<td>{_text(student.phone)}</td>"
        "<td>"
        '<div class="actions">'
        f'<button class="btn btn-small btn-secondary" data-action="edit" data-id="{student_id}">'
        '<i class="fas fa-edit"></i></button>'
        f'<button class="btn btn-small btn-danger" data-action="delete" data-id="{student_id}">'
        '<i class="fas fa-trash"></i></button>'
        "</div>"
        "</td>"
        "</tr>"
    )


def render_students_table(students: Sequence[Student]) -> str:
    """Returns the roster table, or the empty-state placeholder for no students."""
    if not students:
        return EMPTY_STATE_HTML

    header = "".join(f"<th>{title}</th>" for title in TABLE_HEADERS)
    rows = "".join(render_student_row(student) for student in students)
    return (
        '<table class="students-table">'
        f"<thead><tr>{header}</tr></thead>"
        f"<tbody>{rows}</tbody>"
        "</table>"
    )

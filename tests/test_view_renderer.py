# /tests/test_view_renderer.py

from app.models.student_model import Student
from app.services.view_renderer import EMPTY_STATE_HTML, render_students_table


def _student(**overrides) -> Student:
    data = {"id": "stu_1", "teacher_id": "t1", "name": "ann lee", "email": "a@x.com", "grade": "5"}
    data.update(overrides)
    return Student(**data)


def test_empty_list_renders_placeholder():
    assert render_students_table([]) == EMPTY_STATE_HTML
    assert "No students yet" in EMPTY_STATE_HTML


def test_row_shows_avatar_initial_and_placeholders():
    html = render_students_table([_student(subject="Math")])

    assert '<div class="student-avatar">A</div>' in html
    assert "<td>Math</td>" in html
    # parent and phone are missing
    assert html.count("<td>--</td>") == 2


def test_actions_are_keyed_by_record_id():
    html = render_students_table([_student(id="stu_a"), _student(id="stu_b")])

    assert 'data-action="edit" data-id="stu_a"' in html
    assert 'data-action="delete" data-id="stu_b"' in html
    assert html.count("<tr>") == 3  # header plus two rows


def test_user_text_is_escaped():
    html = render_students_table([_student(name="<script>x</script>", notes="n/a")])

    assert "<script>" not in html
    assert "&lt;script&gt;" in html

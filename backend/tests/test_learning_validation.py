"""
Submission and feedback validation: all violations are reported together.
"""
from __future__ import annotations

import pytest

from backend.common.errors import ValidationError
from backend.learning.validation import validate_feedback, validate_filters, validate_submission


def _fields(exc: ValidationError) -> dict:
    return {e.field: e.message for e in exc.errors}


def test_valid_submission_is_normalized():
    content = validate_submission(
        title="  Sorting  ",
        language="java",
        code="class A {}",
        description="  bubble sort ",
        tags=[" algo ", "", "algo", "sort"],
    )
    assert content.title == "Sorting"
    assert content.description == "bubble sort"
    assert content.tags == ("algo", "sort")


def test_all_submission_errors_are_collected():
    with pytest.raises(ValidationError) as info:
        validate_submission(title="", language="ruby", code="", description="x" * 501, tags="nope")
    fields = _fields(info.value)
    assert fields == {
        "title": "Title is required",
        "language": "Invalid language",
        "code": "Code is required",
        "description": "Description cannot exceed 500 characters",
        "tags": "Tags must be a list of strings",
    }


def test_title_length_boundary():
    validate_submission(title="t" * 100, language="c", code="int main(){}")
    with pytest.raises(ValidationError) as info:
        validate_submission(title="t" * 101, language="c", code="int main(){}")
    assert _fields(info.value)["title"] == "Title cannot exceed 100 characters"


@pytest.mark.parametrize("grade", [0, 50, 100, None])
def test_feedback_accepts_grades_in_range(grade):
    comment, value = validate_feedback(comment=" Well done ", grade=grade)
    assert comment == "Well done"
    assert value == grade


@pytest.mark.parametrize("grade,expected", [("85", 85), (85.0, 85), ("0", 0), (100.0, 100)])
def test_feedback_accepts_whole_number_grades(grade, expected):
    _, value = validate_feedback(comment="ok", grade=grade)
    assert value == expected
    assert isinstance(value, int)


@pytest.mark.parametrize("grade", [-1, 101, 150, "101", -5.0])
def test_feedback_rejects_grades_out_of_range(grade):
    with pytest.raises(ValidationError) as info:
        validate_feedback(comment="ok", grade=grade)
    assert _fields(info.value) == {"grade": "Grade must be between 0 and 100"}


@pytest.mark.parametrize("grade", ["abc", "", "85.5", 9.5, True, [90], float("nan")])
def test_feedback_rejects_non_numeric_grades(grade):
    with pytest.raises(ValidationError) as info:
        validate_feedback(comment="ok", grade=grade)
    assert _fields(info.value) == {"grade": "Grade must be a whole number"}


def test_whitespace_only_code_is_kept_verbatim():
    content = validate_submission(title="Blank", language="python", code="   \n")
    assert content.code == "   \n"


def test_feedback_requires_comment():
    with pytest.raises(ValidationError) as info:
        validate_feedback(comment="  ", grade=101)
    assert set(_fields(info.value)) == {"comment", "grade"}


def test_filters_reject_unknown_values():
    with pytest.raises(ValidationError) as info:
        validate_filters(language="go", status="done")
    assert set(_fields(info.value)) == {"language", "status"}
    filters = validate_filters(language="", status=None, search="  ")
    assert filters.language is None and filters.search is None

"""
Teacher administration API: dashboard, student listing, per-student codes,
feedback/grading and account management.
"""
from __future__ import annotations

import pytest

from utils.api import client, login_teacher, register, submit_code

pytestmark = pytest.mark.anyio("asyncio")


async def test_admin_routes_are_teacher_only():
    async with client() as c:
        alice = await register(c, "alice")
        responses = [
            await c.get("/api/admin/dashboard", headers=alice["headers"]),
            await c.get("/api/admin/students", headers=alice["headers"]),
            await c.post("/api/admin/users", json={}, headers=alice["headers"]),
        ]
        anonymous = await c.get("/api/admin/dashboard")
    for r in responses:
        assert r.status_code == 403
    assert anonymous.status_code == 401


async def test_dashboard_statistics():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        bob = await register(c, "bob")
        await register(c, "carol")
        py1 = await submit_code(c, alice["headers"], title="p1", language="python")
        py2 = await submit_code(c, bob["headers"], title="p2", language="python")
        await submit_code(c, bob["headers"], title="j1", language="java")
        await submit_code(c, alice["headers"], title="c1", language="c")
        await c.post(f"/api/admin/codes/{py1['id']}/feedback", json={"comment": "ok", "grade": 90}, headers=teacher["headers"])
        await c.post(f"/api/admin/codes/{py2['id']}/feedback", json={"comment": "ok", "grade": 85}, headers=teacher["headers"])
        await c.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret1"})

        r = await c.get("/api/admin/dashboard", headers=teacher["headers"])

    assert r.status_code == 200
    stats = r.json()["stats"]
    assert stats["totalStudents"] == 3
    assert stats["totalSubmissions"] == 4
    assert stats["activeToday"] == 1
    assert stats["languageStats"] == [
        {"language": "python", "count": 2},
        {"language": "c", "count": 1},
        {"language": "java", "count": 1},
    ]
    assert stats["gradeStats"] == {"avgGrade": 87.5, "minGrade": 85, "maxGrade": 90, "count": 2}
    recent = stats["recentSubmissions"]
    assert [x["title"] for x in recent] == ["c1", "j1", "p2", "p1"]
    assert recent[0]["user"]["username"] == "alice"
    assert recent[3]["feedback"]["teacher"]["username"] == "admin"


async def test_students_listing_paging_search_and_sort():
    async with client() as c:
        teacher = await login_teacher(c)
        for i in range(15):
            await register(c, f"student{i:02d}")
        r_page = await c.get("/api/admin/students", params={"page": 1, "limit": 5}, headers=teacher["headers"])
        r_last = await c.get("/api/admin/students", params={"page": 3, "limit": 5}, headers=teacher["headers"])
        r_search = await c.get("/api/admin/students", params={"search": "STUDENT1"}, headers=teacher["headers"])
        r_sort = await c.get(
            "/api/admin/students", params={"sortBy": "username", "limit": 3}, headers=teacher["headers"]
        )

    page = r_page.json()
    assert len(page["students"]) == 5
    assert (page["total"], page["totalPages"], page["currentPage"]) == (15, 3, 1)
    assert len(r_last.json()["students"]) == 5
    assert all(s["role"] == "student" for s in page["students"])
    assert {s["username"] for s in r_search.json()["students"]} == {f"student1{i}" for i in range(5)}
    assert [s["username"] for s in r_sort.json()["students"]] == ["student14", "student13", "student12"]


async def test_students_listing_includes_submission_stats():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        await register(c, "bob")
        await submit_code(c, alice["headers"])
        await submit_code(c, alice["headers"])
        r = await c.get("/api/admin/students", params={"sortBy": "username"}, headers=teacher["headers"])
    rows = {s["username"]: s for s in r.json()["students"]}
    assert rows["alice"]["submissionCount"] == 2
    assert rows["alice"]["lastSubmission"] is not None
    assert rows["bob"]["submissionCount"] == 0
    assert rows["bob"]["lastSubmission"] is None


async def test_student_codes():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        await submit_code(c, alice["headers"], title="py", language="python")
        await submit_code(c, alice["headers"], title="js", language="javascript")
        sid = alice["user"]["id"]
        r = await c.get(f"/api/admin/students/{sid}/codes", headers=teacher["headers"])
        r_lang = await c.get(
            f"/api/admin/students/{sid}/codes", params={"language": "python"}, headers=teacher["headers"]
        )
        r_missing = await c.get("/api/admin/students/nobody/codes", headers=teacher["headers"])
    body = r.json()
    assert body["student"] == {"id": sid, "username": "alice", "email": "alice@example.com"}
    assert [x["title"] for x in body["codes"]] == ["js", "py"]
    assert [x["title"] for x in r_lang.json()["codes"]] == ["py"]
    assert r_missing.status_code == 404


async def test_feedback_grades_and_validates():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        code = await submit_code(c, alice["headers"])
        url = f"/api/admin/codes/{code['id']}/feedback"
        r_bad = await c.post(url, json={"comment": "ok", "grade": 150}, headers=teacher["headers"])
        r_review = await c.post(url, json={"comment": "Consider edge cases"}, headers=teacher["headers"])
        r_zero = await c.post(url, json={"comment": "Does not run", "grade": 0}, headers=teacher["headers"])
        r_student_view = await c.get(f"/api/code/{code['id']}", headers=alice["headers"])
        r_missing = await c.post("/api/admin/codes/nope/feedback", json={"comment": "x"}, headers=teacher["headers"])
        r_by_student = await c.post(url, json={"comment": "self", "grade": 100}, headers=alice["headers"])

    assert r_bad.status_code == 400
    assert r_bad.json()["errors"] == [{"field": "grade", "message": "Grade must be between 0 and 100"}]
    assert r_review.json()["code"]["status"] == "reviewed"
    graded = r_zero.json()["code"]
    assert graded["status"] == "graded"
    assert graded["feedback"]["grade"] == 0
    assert graded["feedback"]["comment"] == "Does not run"
    assert graded["feedback"]["teacher"]["username"] == "admin"
    assert r_student_view.json()["code"]["feedback"]["grade"] == 0
    assert r_missing.status_code == 404
    assert r_by_student.status_code == 403


async def test_create_student_account():
    async with client() as c:
        teacher = await login_teacher(c)
        r = await c.post(
            "/api/admin/users",
            json={"username": "newbie", "email": "NEWBIE@example.com", "password": "secret1", "role": "teacher"},
            headers=teacher["headers"],
        )
        r_dup = await c.post(
            "/api/admin/users",
            json={"username": "other", "email": "newbie@example.com", "password": "secret1"},
            headers=teacher["headers"],
        )
        r_login = await c.post("/api/auth/login", json={"email": "newbie@example.com", "password": "secret1"})
    assert r.status_code == 201
    assert r.json()["user"]["role"] == "student"
    assert r.json()["user"]["email"] == "newbie@example.com"
    assert r_dup.status_code == 400
    assert r_dup.json()["reason"] == "email_exists"
    assert r_login.status_code == 200


async def test_delete_student_cascades_and_revokes_access():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        bob = await register(c, "bob")
        for _ in range(3):
            await submit_code(c, alice["headers"])
        await submit_code(c, bob["headers"])

        r = await c.delete(f"/api/admin/users/{alice['user']['id']}", headers=teacher["headers"])
        r_again = await c.delete(f"/api/admin/users/{alice['user']['id']}", headers=teacher["headers"])
        r_login = await c.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret1"})
        r_token = await c.get("/api/auth/me", headers=alice["headers"])
        r_dash = await c.get("/api/admin/dashboard", headers=teacher["headers"])

    assert r.status_code == 200
    assert r.json()["message"] == "User and associated data deleted successfully"
    assert r_again.status_code == 404
    assert r_login.status_code == 401
    assert r_token.status_code == 401
    assert r_dash.json()["stats"]["totalSubmissions"] == 1
    assert r_dash.json()["stats"]["totalStudents"] == 1


async def test_teacher_accounts_cannot_be_deleted():
    async with client() as c:
        teacher = await login_teacher(c)
        r = await c.delete(f"/api/admin/users/{teacher['user']['id']}", headers=teacher["headers"])
        r_me = await c.get("/api/auth/me", headers=teacher["headers"])
    assert r.status_code == 403
    assert r.json()["message"] == "Cannot delete teacher accounts"
    assert r_me.status_code == 200


async def test_dashboard_one_submission_per_language():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        for lang in ("javascript", "python", "java"):
            await submit_code(c, alice["headers"], language=lang)
        r = await c.get("/api/admin/dashboard", headers=teacher["headers"])
    stats = r.json()["stats"]
    assert stats["totalSubmissions"] == 3
    assert sorted((x["language"], x["count"]) for x in stats["languageStats"]) == [
        ("java", 1),
        ("javascript", 1),
        ("python", 1),
    ]
    assert stats["gradeStats"] == {"avgGrade": 0.0, "minGrade": 0, "maxGrade": 0, "count": 0}


async def test_feedback_accepts_numeric_grade_forms():
    async with client() as c:
        teacher = await login_teacher(c)
        alice = await register(c, "alice")
        code = await submit_code(c, alice["headers"])
        url = f"/api/admin/codes/{code['id']}/feedback"
        r_text = await c.post(url, json={"comment": "ok", "grade": "85"}, headers=teacher["headers"])
        r_float = await c.post(url, json={"comment": "ok", "grade": 85.0}, headers=teacher["headers"])
        r_word = await c.post(url, json={"comment": "ok", "grade": "abc"}, headers=teacher["headers"])

    assert r_text.status_code == 200
    assert r_text.json()["code"]["feedback"]["grade"] == 85
    assert r_text.json()["code"]["status"] == "graded"
    assert r_float.status_code == 200
    assert r_float.json()["code"]["feedback"]["grade"] == 85
    assert r_word.status_code == 400
    assert r_word.json()["errors"] == [{"field": "grade", "message": "Grade must be a whole number"}]

"""HTTP surface: status codes and payloads the frontend relies on."""
from datetime import datetime, timedelta

from app.models.user import User
from app.utils.dt import utcnow
from tests.conftest import NOW


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_register_login_and_me(client):
    r = client.post("/auth/register", json={
        "email": "ayesha@example.com", "password": "supersecret", "full_name": "Ayesha",
    })
    assert r.status_code == 200
    assert r.json()["trial_used"] is False
    assert r.json()["role"] == "student"

    dup = client.post("/auth/register", json={"email": "ayesha@example.com", "password": "supersecret"})
    assert dup.status_code == 400

    bad = client.post("/auth/login", json={"email": "ayesha@example.com", "password": "wrong-password"})
    assert bad.status_code == 401

    token = client.post("/auth/login", json={"email": "ayesha@example.com", "password": "supersecret"}).json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "ayesha@example.com"


def test_missing_or_bad_token(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_access_check_reports_without_enforcing(client, make_user, make_course, auth_headers):
    user, course = make_user(), make_course()

    r = client.get("/access/check", params={"course_id": course.id, "resource_type": "live_class"}, headers=auth_headers(user))

    assert r.status_code == 200
    body = r.json()
    assert body["granted"] is False
    assert body["via"] == "none"
    assert body["reason"] == "trial_available"


def test_access_check_unknown_course(client, make_user, auth_headers):
    r = client.get("/access/check", params={"course_id": 999, "resource_type": "live_class"}, headers=auth_headers(make_user()))
    assert r.status_code == 404


def test_trial_flow(client, db, make_user, make_course, auth_headers):
    user, course, other = make_user(), make_course("Physics"), make_course("Chemistry")
    headers = auth_headers(user)

    assert client.get("/trials/eligibility", headers=headers).json() == {"eligible": True}
    assert client.get(f"/courses/{course.id}/recordings", headers=headers).status_code == 402

    r = client.post("/trials", json={"course_id": course.id, "resource_type": "lecture_recording"}, headers=headers)
    assert r.status_code == 201
    assert r.json()["resource_type"] == "lecture_recording"

    assert client.get("/trials/eligibility", headers=headers).json() == {"eligible": False}
    assert client.get(f"/courses/{course.id}/recordings", headers=headers).status_code == 200
    assert len(client.get("/trials/me", headers=headers).json()) == 1

    again = client.post("/trials", json={"course_id": other.id, "resource_type": "live_class"}, headers=headers)
    assert again.status_code == 403
    assert again.json()["detail"]["error"] == "not_eligible"

    db.expire_all()
    assert db.get(User, user.id).trial_used is True


def test_trial_rejects_unknown_resource_type(client, make_user, make_course, auth_headers):
    user, course = make_user(), make_course()
    r = client.post("/trials", json={"course_id": course.id, "resource_type": "pdf_notes"}, headers=auth_headers(user))
    assert r.status_code == 422


def test_duplicate_pending_is_409(client, make_user, make_course, make_grant, auth_headers):
    user, course = make_user(), make_course()
    make_grant(user, course, "live_class", expires_at=utcnow() + timedelta(hours=5))

    r = client.post("/trials", json={"course_id": course.id, "resource_type": "live_class"}, headers=auth_headers(user))

    assert r.status_code == 409
    assert r.json()["detail"]["error"] == "duplicate_pending"


def test_denial_payload(client, make_user, make_course, make_live_class, auth_headers):
    user, course = make_user(trial_used=True), make_course()
    make_live_class(course)

    r = client.get(f"/courses/{course.id}/live-classes", headers=auth_headers(user))

    assert r.status_code == 402
    assert r.json()["detail"] == {
        "reason": "no_access",
        "message": "No live_class access found for this course",
        "resource_type": "live_class",
    }


def test_subscriber_sees_live_classes(client, make_user, make_course, make_plan, make_subscription, make_live_class, auth_headers):
    user, course = make_user(), make_course()
    make_subscription(user, course, make_plan("live_classes_only"), expires_at=utcnow() + timedelta(days=10))
    live = make_live_class(course, scheduled_at=utcnow() + timedelta(days=1))

    r = client.get(f"/courses/{course.id}/live-classes", headers=auth_headers(user))
    assert r.status_code == 200
    assert [c["id"] for c in r.json()] == [live.id]

    assert client.get(f"/courses/{course.id}/recordings", headers=auth_headers(user)).status_code == 402


def test_staff_bypass_and_see_drafts(client, make_user, make_course, make_recording, auth_headers):
    teacher, course = make_user(role="teacher"), make_course()
    make_recording(course, "Draft", NOW, is_published=False)
    make_recording(course, "Lecture 1", NOW + timedelta(hours=1))

    r = client.get(f"/courses/{course.id}/recordings", headers=auth_headers(teacher))

    assert r.status_code == 200
    assert r.json()["via"] == "staff"
    assert len(r.json()["recordings"]) == 2


def test_guest_preview_endpoint(client, make_course, make_recording):
    course = make_course()
    make_recording(course, "Lecture 1", NOW)
    make_recording(course, "Lecture 2", NOW + timedelta(days=1))
    make_recording(course, "Lecture 3", NOW + timedelta(days=2))

    r = client.get(f"/courses/{course.id}/recordings/preview")

    assert r.status_code == 200
    recs = r.json()["recordings"]
    assert r.json()["via"] == "guest"
    assert recs[0]["video_url"] is not None and recs[0]["locked"] is False
    assert [x["video_url"] for x in recs[1:]] == [None, None]
    assert client.get("/courses/999/recordings/preview").status_code == 404


def test_live_classes_need_identity(client, make_course):
    course = make_course()
    assert client.get(f"/courses/{course.id}/live-classes").status_code == 401


def test_admin_trial_endpoints(client, make_user, make_course, auth_headers):
    admin, student, course = make_user(role="admin"), make_user(), make_course()

    denied = client.post("/admin/trials", json={
        "user_id": student.id, "course_id": course.id, "resource_type": "live_class",
    }, headers=auth_headers(student))
    assert denied.status_code == 403

    r = client.post("/admin/trials", json={
        "user_id": student.id, "course_id": course.id, "resource_type": "live_class",
    }, headers=auth_headers(admin))
    assert r.status_code == 201
    grant_id = r.json()["id"]
    assert r.json()["granted_by"] == admin.id

    listing = client.get("/admin/trials", params={"status": "active"}, headers=auth_headers(admin)).json()
    assert [t["id"] for t in listing["trials"]] == [grant_id]
    assert listing["stats"]["by_type"] == {"lecture_recording": 0, "live_class": 1}

    assert client.get("/admin/trials", params={"status": "bogus"}, headers=auth_headers(admin)).status_code == 422

    assert client.delete(f"/admin/trials/{grant_id}", headers=auth_headers(admin)).status_code == 204
    assert client.delete(f"/admin/trials/{grant_id}", headers=auth_headers(admin)).status_code == 404


def test_plan_catalog(client, make_user, auth_headers):
    admin = make_user(role="admin")
    headers = auth_headers(admin)

    bad = client.post("/plans", json={"name": "Broken", "type": "recordings_only", "price": 500}, headers=headers)
    assert bad.status_code == 422

    r = client.post("/plans", json={
        "name": "Recordings Monthly", "type": "recordings_only", "price": 1500, "duration_months": 1,
    }, headers=headers)
    assert r.status_code == 201
    plan = r.json()
    assert plan["currency"] == "PKR"

    client.post("/plans", json={
        "name": "Live Term", "type": "live_classes_only", "price": 900, "duration_until_date": "2031-06-30",
    }, headers=headers)

    public = client.get("/plans").json()
    assert [p["name"] for p in public] == ["Live Term", "Recordings Monthly"]
    assert [p["name"] for p in client.get("/plans", params={"type": "recordings_only"}).json()] == ["Recordings Monthly"]

    patched = client.patch(f"/plans/{plan['id']}", json={"duration_until_date": "2031-12-31"}, headers=headers).json()
    assert patched["duration_months"] is None
    assert patched["duration_until_date"] == "2031-12-31"

    # a null would blank the only duration the plan has
    nulled = client.patch(f"/plans/{plan['id']}", json={"duration_months": None}, headers=headers)
    assert nulled.status_code == 422
    stored = {p["id"]: p for p in client.get("/plans/all", headers=headers).json()}[plan["id"]]
    assert stored["duration_until_date"] == "2031-12-31"

    assert client.delete(f"/plans/{plan['id']}", headers=headers).json()["is_active"] is False
    assert [p["name"] for p in client.get("/plans").json()] == ["Live Term"]
    assert len(client.get("/plans/all", headers=headers).json()) == 2


def test_activate_purchase_endpoint(client, make_user, make_course, make_plan, auth_headers):
    admin, student, course = make_user(role="admin"), make_user(), make_course()
    plan = make_plan("recordings_and_live", duration_months=3)
    payload = {"user_id": student.id, "course_id": course.id, "plan_id": plan.id}

    r = client.post("/subscriptions/activate", json=payload, headers=auth_headers(admin))
    assert r.status_code == 201
    assert r.json()["enrollment_type"] == "paid"

    mine = client.get("/subscriptions/me", headers=auth_headers(student)).json()
    assert len(mine) == 1
    assert mine[0]["is_active_now"] is True

    again = client.post("/subscriptions/activate", json=payload, headers=auth_headers(admin))
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "enrollment_conflict"


def test_activate_purchase_with_retired_plan(client, make_user, make_course, make_plan, auth_headers):
    admin, student, course = make_user(role="admin"), make_user(), make_course()
    plan = make_plan(is_active=False)

    r = client.post("/subscriptions/activate", json={
        "user_id": student.id, "course_id": course.id, "plan_id": plan.id,
    }, headers=auth_headers(admin))

    assert r.status_code == 400
    assert r.json()["detail"]["error"] == "plan_unavailable"


def test_admin_enrollment_management(client, make_user, make_course, make_plan, make_enrollment, auth_headers):
    admin, student, trialist, course = make_user(role="admin"), make_user(), make_user(), make_course()
    headers = auth_headers(admin)
    plan = make_plan("recordings_only", duration_months=1)
    demo = make_enrollment(trialist, course, type="demo")

    assert client.get("/admin/enrollments", headers=auth_headers(student)).status_code == 403
    assert client.post("/admin/enrollments", json={"user_id": student.id, "course_id": 999}, headers=headers).status_code == 404

    manual = client.post("/admin/enrollments", json={"user_id": student.id, "course_id": course.id}, headers=headers)
    assert manual.status_code == 201
    assert manual.json()["type"] == "paid"
    assert manual.json()["subscription_id"] is None
    dup = client.post("/admin/enrollments", json={"user_id": student.id, "course_id": course.id}, headers=headers)
    assert dup.status_code == 409

    promoted = client.patch(f"/admin/enrollments/{demo.id}", json={"action": "promote_to_paid", "plan_id": plan.id}, headers=headers)
    assert promoted.status_code == 200
    assert promoted.json()["type"] == "paid"
    assert promoted.json()["plan_type"] == "recordings_only"
    assert promoted.json()["subscription"]["status"] == "active"

    again = client.patch(f"/admin/enrollments/{demo.id}", json={"action": "promote_to_paid", "plan_id": plan.id}, headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"]["error"] == "invalid_enrollment_change"

    listing = client.get("/admin/enrollments", params={"course_id": course.id}, headers=headers).json()
    by_user = {e["user_id"]: e for e in listing}
    assert by_user[student.id]["subscription"] is None
    assert by_user[trialist.id]["subscription"]["plan_id"] == plan.id
    assert client.get("/admin/enrollments", params={"type": "demo"}, headers=headers).json() == []

    # a removed paid member loses access through both ledgers
    trialist_headers = auth_headers(trialist)
    assert client.get(f"/courses/{course.id}/recordings", headers=trialist_headers).status_code == 200
    assert client.delete(f"/admin/enrollments/{demo.id}", headers=headers).status_code == 204
    assert client.get(f"/courses/{course.id}/recordings", headers=trialist_headers).status_code == 402
    assert client.delete(f"/admin/enrollments/{demo.id}", headers=headers).status_code == 404


def test_admin_changes_enrollment_plan(client, make_user, make_course, make_plan, auth_headers):
    admin, student, course = make_user(role="admin"), make_user(), make_course()
    headers = auth_headers(admin)
    recordings, live = make_plan("recordings_only"), make_plan("live_classes_only")
    enrollment_id = client.post(
        "/admin/enrollments", json={"user_id": student.id, "course_id": course.id}, headers=headers,
    ).json()["id"]

    r = client.patch(f"/admin/enrollments/{enrollment_id}", json={"action": "change_plan", "plan_id": live.id}, headers=headers)
    assert r.status_code == 200
    assert r.json()["plan_type"] == "live_classes_only"
    sub_id = r.json()["subscription_id"]

    r = client.patch(f"/admin/enrollments/{enrollment_id}", json={"action": "change_plan", "plan_id": recordings.id}, headers=headers)
    assert r.json()["subscription_id"] == sub_id
    assert r.json()["subscription"]["plan_id"] == recordings.id

    bogus = client.patch(f"/admin/enrollments/{enrollment_id}", json={"action": "downgrade", "plan_id": live.id}, headers=headers)
    assert bogus.status_code == 422
    missing = client.patch("/admin/enrollments/999", json={"action": "change_plan", "plan_id": live.id}, headers=headers)
    assert missing.status_code == 404


def test_trial_usage_endpoints(client, make_user, make_course, make_recording, auth_headers):
    user, course, other = make_user(), make_course("Physics"), make_course("Chemistry")
    headers = auth_headers(user)
    lecture = make_recording(course, "Lecture 1", NOW)
    foreign = make_recording(other, "Titration", NOW)
    payload = {"course_id": course.id, "resource_type": "lecture_recording", "resource_id": lecture.id}

    before = client.post("/trials/usage", json=payload, headers=headers)
    assert before.status_code == 403
    assert before.json()["detail"]["error"] == "no_active_trial"

    client.post("/trials", json={"course_id": course.id, "resource_type": "lecture_recording"}, headers=headers)

    first = client.post("/trials/usage", json=payload, headers=headers)
    assert first.status_code == 200
    assert first.json()["already_tracked"] is False
    assert client.post("/trials/usage", json=payload, headers=headers).json()["already_tracked"] is True

    wrong_course = client.post("/trials/usage", json={**payload, "resource_id": foreign.id}, headers=headers)
    assert wrong_course.status_code == 404

    summary = client.get("/trials/usage", params={"course_id": course.id}, headers=headers).json()
    assert summary == {
        "course_id": course.id,
        "resource_type": "lecture_recording",
        "resource_ids": [lecture.id],
        "count": 1,
        "has_used_trial": True,
    }
    assert client.get("/trials/usage", params={"course_id": course.id, "resource_type": "live_class"}, headers=headers).json()["count"] == 0


def test_timestamps_carry_utc_offset(client, make_user, make_course, auth_headers):
    user, course = make_user(), make_course()

    r = client.post("/trials", json={"course_id": course.id, "resource_type": "live_class"}, headers=auth_headers(user))
    trial = r.json()

    for field in ("used_at", "expires_at"):
        parsed = datetime.fromisoformat(trial[field].replace("Z", "+00:00"))
        assert parsed.utcoffset() == timedelta(0)

    listed = client.get("/trials/me", headers=auth_headers(user)).json()[0]
    assert datetime.fromisoformat(listed["expires_at"].replace("Z", "+00:00")).tzinfo is not None

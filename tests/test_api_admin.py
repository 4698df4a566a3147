"""Admin review, learner management and overview endpoints."""

from learntrack.models.profile import Role, Track

import factories


def _submitted_attempt(client, learner, seed, points=10):
    task_id = seed(factories.create_task, "Write a summary", Track.ENGLISH, points)
    attempt = client.post(f"/api/tasks/{task_id}/start", headers=learner.headers).json()["attempt"]
    client.post(f"/api/tasks/attempts/{attempt['id']}/submit", headers=learner.headers,
                json={"proof": "https://example.com/summary"})
    return attempt["id"]


def test_learner_is_redirected_from_admin_views(client, register):
    learner = register()
    response = client.get("/api/admin/overview", headers=learner.headers)
    assert response.status_code == 403
    assert response.json()["redirect_to"] == "/dashboard"

    assert client.get("/api/admin/overview").json()["redirect_to"] == "/auth"


def test_approve_grants_points_once(client, register, seed):
    learner = register()
    admin = register(role=Role.ADMIN)
    seed(factories.set_points, learner.user_id, 50)
    attempt_id = _submitted_attempt(client, learner, seed, points=10)

    response = client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=admin.headers)
    assert response.status_code == 200
    data = response.json()
    assert data["attempt"]["status"] == "approved"
    assert data["points_granted"] == 10
    assert data["total_points"] == 60
    assert data["notification"]["title"] == "Approved"

    response = client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=admin.headers)
    assert response.status_code == 409
    assert response.json()["current_status"] == "approved"

    profile = client.get("/api/profile/me", headers=learner.headers).json()
    assert profile["profile"]["points"] == 60
    assert profile["profile"]["english_progress"] == 100.0
    assert profile["activities"][0]["activity_type"] == "task_approved"


def test_approve_with_override_points(client, register, seed):
    learner = register()
    admin = register(role=Role.ADMIN)
    attempt_id = _submitted_attempt(client, learner, seed, points=10)

    response = client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=admin.headers,
                           json={"points": 30})
    assert response.json()["total_points"] == 30


def test_rejected_submission_cannot_be_approved(client, register, seed):
    learner = register()
    admin = register(role=Role.ADMIN)
    attempt_id = _submitted_attempt(client, learner, seed)

    response = client.post(f"/api/admin/submissions/{attempt_id}/reject", headers=admin.headers)
    assert response.status_code == 200
    assert response.json()["attempt"]["status"] == "rejected"

    response = client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=admin.headers)
    assert response.status_code == 409
    assert client.get("/api/profile/me", headers=learner.headers).json()["profile"]["points"] == 0


def test_learner_cannot_approve(client, register, seed):
    learner = register()
    attempt_id = _submitted_attempt(client, learner, seed)
    response = client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=learner.headers)
    assert response.status_code == 403


def test_overview_stats_and_cache_invalidation(client, register, seed):
    first = register(full_name="First")
    second = register(full_name="Second")
    admin = register(role=Role.ADMIN)
    seed(factories.set_points, first.user_id, 40)
    seed(factories.set_points, second.user_id, 20)
    attempt_id = _submitted_attempt(client, second, seed, points=30)

    overview = client.get("/api/admin/overview", headers=admin.headers).json()
    assert overview["stats"] == {
        "total_learners": 2,
        "average_progress": 0.0,
        "total_points": 60,
        "pending_tasks": 1,
    }
    assert [learner["full_name"] for learner in overview["learners"]] == ["First", "Second"]
    assert overview["pending_submissions"][0]["id"] == attempt_id
    assert overview["pending_submissions"][0]["user"]["full_name"] == "Second"

    client.post(f"/api/admin/submissions/{attempt_id}/approve", headers=admin.headers)

    overview = client.get("/api/admin/overview", headers=admin.headers).json()
    assert overview["stats"]["pending_tasks"] == 0
    assert overview["stats"]["total_points"] == 90
    assert [learner["full_name"] for learner in overview["learners"]] == ["Second", "First"]


def test_change_level(client, register):
    learner = register()
    admin = register(role=Role.ADMIN)

    response = client.patch(f"/api/admin/learners/{learner.user_id}/level", headers=admin.headers,
                            json={"level": "Intermediate"})
    assert response.status_code == 200
    assert response.json()["profile"]["level"] == "Intermediate"

    response = client.patch(f"/api/admin/learners/{learner.user_id}/level", headers=admin.headers,
                            json={"level": "Expert"})
    assert response.status_code == 422

    response = client.patch("/api/admin/learners/missing/level", headers=admin.headers,
                            json={"level": "Advanced"})
    assert response.status_code == 404


def test_content_creation(client, register):
    learner = register()
    admin = register(role=Role.ADMIN)

    response = client.post("/api/admin/tasks", headers=admin.headers,
                           json={"title": "Interview practice", "track": "soft", "points": 20})
    assert response.status_code == 201
    assert response.json()["points"] == 20

    response = client.post("/api/admin/lessons", headers=admin.headers,
                           json={"title": "Grammar basics", "track": "english", "order_index": 1})
    assert response.status_code == 201
    assert [lesson["title"] for lesson in client.get("/api/lessons", headers=learner.headers).json()] == ["Grammar basics"]

    response = client.post(f"/api/admin/learners/{learner.user_id}/custom-lessons", headers=admin.headers,
                           json={"title": "Extra reading", "video_link": "https://example.com/v"})
    assert response.status_code == 201
    custom = client.get("/api/lessons/custom", headers=learner.headers).json()
    assert [lesson["title"] for lesson in custom] == ["Extra reading"]

    response = client.post("/api/admin/learners/missing/custom-lessons", headers=admin.headers,
                           json={"title": "Nobody"})
    assert response.status_code == 404

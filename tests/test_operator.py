def test_category_crud(client, auth, operator_user):
    headers = auth(operator_user)
    response = client.post("/api/operator/categories", json={"name": " Science "}, headers=headers)
    assert response.status_code == 201, response.text
    category = response.json()
    assert category["name"] == "Science"
    assert category["isActive"] is True

    duplicate = client.post("/api/operator/categories", json={"name": "Science"}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "DUPLICATE_METADATA"

    renamed = client.patch(f"/api/operator/categories/{category['id']}", json={"name": "Sciences"}, headers=headers)
    assert renamed.json()["name"] == "Sciences"

    removed = client.delete(f"/api/operator/categories/{category['id']}", headers=headers)
    assert removed.json()["isActive"] is False

    active = client.get("/api/operator/categories?isActive=true", headers=headers).json()
    assert active == []

    missing = client.patch("/api/operator/categories/999", json={"name": "x"}, headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "METADATA_NOT_FOUND"


def test_difficulties_sorted_by_sort_order(client, auth, operator_user):
    headers = auth(operator_user)
    client.post("/api/operator/difficulties", json={"name": "Advanced", "sortOrder": 3}, headers=headers)
    client.post("/api/operator/difficulties", json={"name": "Beginner", "sortOrder": 1}, headers=headers)

    names = [item["name"] for item in client.get("/api/operator/difficulties", headers=headers).json()]
    assert names == ["Beginner", "Advanced"]


def test_metadata_is_operator_only(client, auth, instructor):
    response = client.post("/api/operator/categories", json={"name": "Art"}, headers=auth(instructor))
    assert response.status_code == 403


def test_report_lifecycle(client, auth, learner, operator_user, course):
    response = client.post(
        "/api/reports",
        json={"targetType": "course", "targetId": course.id, "reason": "Offensive content"},
        headers=auth(learner),
    )
    assert response.status_code == 201, response.text
    report = response.json()
    assert report["status"] == "received"
    assert report["reporterId"] == learner.id

    headers = auth(operator_user)
    page = client.get("/api/operator/reports?status=received", headers=headers).json()
    assert page["total"] == 1

    response = client.post(f"/api/operator/reports/{report['id']}/actions", json={"action": "escalate"}, headers=headers)
    assert response.json()["status"] == "investigating"

    response = client.patch(f"/api/operator/reports/{report['id']}/status", json={"status": "received"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REPORT_STATUS_TRANSITION"

    response = client.post(
        f"/api/operator/reports/{report['id']}/actions",
        json={"action": "resolve", "note": "Removed"},
        headers=headers,
    )
    resolved = response.json()
    assert resolved["status"] == "resolved"
    assert resolved["resolvedBy"] == operator_user.id
    assert resolved["resolvedAt"] is not None

    reopened = client.patch(f"/api/operator/reports/{report['id']}/status", json={"status": "received"}, headers=headers)
    assert reopened.json()["resolvedAt"] is None


def test_reports_hidden_from_non_operators(client, auth, learner):
    assert client.get("/api/operator/reports", headers=auth(learner)).status_code == 403
    response = client.get("/api/operator/reports/1", headers=auth(learner))
    assert response.status_code == 403

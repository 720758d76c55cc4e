import pytest

from classbook.models.student import Student

from tests.conftest import make_student


@pytest.fixture
def seeded_client(client, store):
    store.students = [
        Student.model_validate(
            make_student(
                id="1001",
                attendance=["2024-03-05", "2024-03-12"],
                grades=[
                    {"type": "quiz", "score": 8, "max": 10, "date": "2024-03-05T10:00:00"},
                    {"type": "monthly", "score": 18, "max": 20, "date": "2024-03-12T11:00:00"},
                ],
                payments=[{"amount": "150", "note": "March", "date": "2024-03-05T10:05:00"}],
            )
        ),
        Student.model_validate(make_student(id="1002", name="Hana Samir", stage="Sec1")),
    ]
    resp = client.post("/api/storage/reload")
    assert resp.json() == {"students": 2}
    return client


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_register_and_fetch_student(client):
    resp = client.post(
        "/api/students/",
        json={
            "id": "321",
            "name": "Karim Nabil",
            "age": 13,
            "stage": "prep1",
            "phone": "01011112222",
            "guardianPhone": "01233334444",
        },
    )
    assert resp.status_code == 201
    assert resp.json() == {"id": "321", "name": "Karim Nabil", "synced": True}

    profile = client.get("/api/students/321").json()
    assert profile["guardianPhone"] == "01233334444"
    assert profile["attendance"] == []
    assert profile["reportLog"] == {}


def test_register_duplicate_code_conflicts(seeded_client):
    resp = seeded_client.post(
        "/api/students/",
        json={"id": "1001", "name": "X", "age": 10, "phone": "01011112222", "guardianPhone": "01233334444"},
    )
    assert resp.status_code == 409


@pytest.mark.parametrize(
    "body",
    [
        {"name": "X", "age": 10, "phone": "0101", "guardianPhone": "01233334444"},
        {"id": "12", "name": "X", "age": 10, "phone": "01011112222", "guardianPhone": "01233334444"},
        {"name": "   ", "age": 10, "phone": "01011112222", "guardianPhone": "01233334444"},
        {"name": "X", "age": 10, "stage": "prep9", "phone": "01011112222", "guardianPhone": "01233334444"},
    ],
)
def test_register_validation(client, body):
    assert client.post("/api/students/", json=body).status_code == 422


def test_unknown_student_is_404(client):
    assert client.get("/api/students/9999").status_code == 404
    assert client.get("/api/reports/9999", params={"month": 3}).status_code == 404


def test_list_and_search(seeded_client):
    assert [s["id"] for s in seeded_client.get("/api/students/").json()] == ["1001", "1002"]
    assert [s["id"] for s in seeded_client.get("/api/students/", params={"q": "Hana"}).json()] == ["1002"]
    assert [s["id"] for s in seeded_client.get("/api/students/", params={"stage": "prep2"}).json()] == ["1001"]


def test_update_and_delete(seeded_client, store):
    resp = seeded_client.patch("/api/students/1002", json={"note": "needs follow-up", "stage": "Sec2"})
    assert resp.status_code == 200
    assert resp.json()["stage"] == "Sec2"
    assert resp.json()["synced"] is True

    assert seeded_client.delete("/api/students/1002").json()["deleted"] is True
    assert [s.id for s in store.students] == ["1001"]


def test_history_newest_first_with_month_filter(seeded_client):
    body = seeded_client.get("/api/students/1001/history").json()
    assert [d["day_key"] for d in body["days"]] == ["2024-03-12", "2024-03-05"]

    body = seeded_client.get("/api/students/1001/history", params={"month": "all", "order": "asc"}).json()
    assert [d["day_key"] for d in body["days"]] == ["2024-03-05", "2024-03-12"]

    assert seeded_client.get("/api/students/1001/history", params={"month": 6}).json()["days"] == []
    assert seeded_client.get("/api/students/1001/history", params={"month": 13}).status_code == 400


def test_mark_attendance_twice(seeded_client):
    first = seeded_client.post("/api/performance/attendance", json={"query": "Hana Samir", "date": "2024-03-20"})
    assert first.json()["already_marked"] is False
    second = seeded_client.post("/api/performance/attendance", json={"query": "1002", "date": "2024-03-20"})
    assert second.json()["already_marked"] is True


def test_add_grade_and_payment(seeded_client):
    resp = seeded_client.post(
        "/api/performance/grades",
        json={"student_id": "1002", "type": "quiz", "score": 9, "max": 10, "date": "2024-03-21"},
    )
    assert resp.status_code == 201
    assert resp.json()["grade"]["date"].startswith("2024-03-21T")

    resp = seeded_client.post(
        "/api/performance/payments", json={"student_id": "1002", "amount": 100, "note": "March"}
    )
    assert resp.status_code == 201

    profile = seeded_client.get("/api/students/1002").json()
    assert profile["attendance"] == ["2024-03-21"]
    assert len(profile["payments"]) == 1

    bad = seeded_client.post(
        "/api/performance/grades", json={"student_id": "1002", "type": "final", "score": 9, "max": 10}
    )
    assert bad.status_code == 422


def test_sync_failure_is_reported(seeded_client, store):
    store.fail = True
    resp = seeded_client.post("/api/performance/payments", json={"student_id": "1001", "amount": 5})
    assert resp.status_code == 201
    assert resp.json()["synced"] is False
    assert resp.json()["sync_error"] == "remote unavailable"


def test_report_payload_is_chronological(seeded_client):
    report = seeded_client.get("/api/reports/1001", params={"month": 3, "note": " Great month "}).json()
    assert [d["day_key"] for d in report["days"]] == ["2024-03-05", "2024-03-12"]
    assert report["summary"] == {"month": 3, "attendance": 2, "average": 87, "payments": 150.0}
    assert report["month_name"] == "March"
    assert report["month_name_ar"] == "مارس"
    assert report["note"] == "Great month"

    assert seeded_client.get("/api/reports/1001").status_code == 422
    assert seeded_client.get("/api/reports/1001", params={"month": "all"}).status_code == 400


def test_report_pdf(seeded_client):
    resp = seeded_client.get("/api/reports/1001/pdf", params={"month": 3})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")


def test_share_records_sent_and_status(seeded_client):
    resp = seeded_client.post("/api/reports/1001/share", params={"month": 3})
    body = resp.json()
    assert body["whatsapp_url"].startswith("https://web.whatsapp.com/send?phone=201198765432&text=")
    assert "2024-3" in body["report_log"]

    status = seeded_client.get("/api/reports/status", params={"month": 3, "year": 2024}).json()
    assert status["sent"] == 1
    assert [(r["code"], r["sent"]) for r in status["rows"]] == [("1001", True), ("1002", False)]


def test_dashboard_stats(seeded_client):
    stats = seeded_client.get("/api/dashboard/stats", params={"month": 3}).json()
    assert stats["total_students"] == 2
    assert stats["attended_students"] == 1
    assert stats["average"] == 87
    assert stats["payments"] == 150
    assert stats["currency"] == "EGP"

    sec1 = seeded_client.get("/api/dashboard/stats", params={"month": 3, "stage": "Sec1"}).json()
    assert sec1["total_students"] == 1
    assert sec1["average"] == 0


def test_storage_usage(seeded_client):
    usage = seeded_client.get("/api/storage/").json()
    assert usage["size_kb"] > 0
    assert usage["limit_kb"] == 1024 * 1024


def test_blank_name_is_reported_field_by_field(client):
    resp = client.post(
        "/api/students/",
        json={"name": "   ", "age": 10, "phone": "01011112222", "guardianPhone": "01233334444"},
    )
    assert resp.status_code == 422
    [error] = resp.json()["detail"]
    assert error["loc"] == ["body", "name"]
    assert "blank" in error["msg"]


@pytest.mark.parametrize("field", ["name", "phone", "guardianPhone"])
def test_patch_cannot_null_required_fields(seeded_client, store, field):
    saves = store.saves
    resp = seeded_client.patch("/api/students/1002", json={field: None})
    assert resp.status_code == 422
    assert store.saves == saves

    listing = seeded_client.get("/api/students/")
    assert listing.status_code == 200
    assert [s["name"] for s in listing.json()] == ["Mona Adel", "Hana Samir"]


def test_patch_strips_name(seeded_client):
    resp = seeded_client.patch("/api/students/1002", json={"name": "  Hana S. "})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Hana S."
    assert seeded_client.patch("/api/students/1002", json={"name": "  "}).status_code == 422


async def test_unreachable_mongodb_fails_startup(monkeypatch):
    from pymongo.errors import ServerSelectionTimeoutError

    from classbook import main

    async def unreachable():
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(main, "db_startup", unreachable)
    with pytest.raises(RuntimeError, match="MONGODB_URL"):
        async with main.lifespan(main.app):
            pass

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "up"


def test_validation_errors_use_envelope(client, manager):
    from conftest import auth_header

    resp = client.get("/api/v1/bookings", params={"limit": 0}, headers=auth_header(manager))
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"][0]["field"] == "query.limit"


def test_database_failure_outside_booking_store_is_503(client, driver, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from conftest import auth_header
    from fleetdesk.services.profile_service import profile_service

    def broken(*args, **kwargs):
        raise OperationalError("SELECT ...", {}, Exception("connection refused"))

    monkeypatch.setattr(profile_service, "_get_in_org", broken)
    resp = client.get("/api/v1/profiles/me", headers=auth_header(driver))
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "STORE_UNAVAILABLE"

from pistats import create_app
from pistats.updater import StatsUpdater


def test_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "healthy"
    assert data["service"] == "pistats"
    assert data["updater"] is False


def test_stats_empty_history_is_404(client):
    resp = client.get("/api/stats")
    assert resp.status_code == 404


def test_history_endpoint(client):
    for _ in range(4):
        client.updater.run_cycle()
    resp = client.get("/api/stats/history")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 2
    assert [e["memory"]["used_mb"] for e in data["entries"]] == [200, 400]
    assert data["entries"][0]["collection_time"].startswith("2024-01-01T00:00:03")


def test_history_limit(client):
    for _ in range(4):
        client.updater.run_cycle()
    data = client.get("/api/stats/history?limit=1").get_json()
    assert [e["memory"]["used_mb"] for e in data["entries"]] == [400]
    data = client.get("/api/stats/history?limit=bogus").get_json()
    assert data["count"] == 2


def test_latest_stats(client):
    client.updater.run_cycle()
    resp = client.get("/api/stats")
    assert resp.status_code == 200
    assert resp.get_json()["memory"]["used_mb"] == 100


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_health_degraded_when_updater_dies(updater_config):
    def collector(duration):
        raise RuntimeError("sensor bus gone")

    updater = StatsUpdater(updater_config, collector=collector)
    app = create_app({"TESTING": False, "STATS_UPDATER_ENABLED": True}, updater=updater)
    updater._thread.join(5)
    resp = app.test_client().get("/health")
    assert resp.status_code == 503
    data = resp.get_json()
    assert data["status"] == "degraded"
    assert data["updater"] is False

from alterations.tests.factories import create_job

API = "/api/v1/alterations"


class TestBoardEndpoints:
    def test_capacity_defaults_to_today(self, client):
        response = client.get(f"{API}/capacity")

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 14
        assert rows[0]["date"] == "2026-03-02"
        assert rows[3]["notes"] == "Thursday: only last-minute allowed"

    def test_capacity_window_clamped(self, client):
        response = client.get(f"{API}/capacity", params={"start": "2026-04-01", "days": 365})

        assert len(response.json()) == 60

    def test_assignments_for_day(self, client, session):
        job = create_job(session, due_date=None)
        client.post(f"{API}/jobs/{job.id}/schedule")

        response = client.get(f"{API}/assignments/2026-03-13")

        assert response.status_code == 200
        rows = response.json()
        assert [row["part_id"] for row in rows] == [job.parts[0].id]
        assert rows[0]["job_number"] == job.job_number


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "healthy", "environment": "test"}

"""Tests for the Flask JSON API."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from site_mirror.crawler.crawler import MirrorResult
from site_mirror.web.app import _run_mirror_job, create_app


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return app.test_client()


class TestStartMirror:

    def test_requires_json(self, client):
        response = client.post("/api/mirror", data="nope")
        assert response.status_code == 400

    def test_requires_url(self, client):
        response = client.post("/api/mirror", json={"maxDepth": 2})
        assert response.status_code == 400
        assert response.get_json()["error"] == "URL is required"

    @pytest.mark.parametrize("payload", [
        {"url": "https://example.com", "maxDepth": 0},
        {"url": "https://example.com", "maxDepth": 21},
        {"url": "https://example.com", "concurrency": 0},
        {"url": "https://example.com", "maxDepth": "deep"},
        {"url": "https://"},
    ])
    def test_rejects_bad_parameters(self, client, payload):
        assert client.post("/api/mirror", json=payload).status_code == 400

    def test_starts_job(self, app, client, tmp_path):
        with patch("site_mirror.web.app.threading.Thread") as thread:
            response = client.post("/api/mirror", json={
                "url": "example.com",
                "maxDepth": 2,
                "outputDir": str(tmp_path),
            })

        assert response.status_code == 200
        job_id = response.get_json()["jobId"]
        thread.return_value.start.assert_called_once()

        status = client.get(f"/api/status/{job_id}").get_json()
        assert status["url"] == "https://example.com"
        assert status["status"] == "starting"
        assert status["output_dir"].endswith("example")

        jobs = client.get("/api/jobs").get_json()["jobs"]
        assert [job["id"] for job in jobs] == [job_id]


def test_unknown_job(client):
    assert client.get("/api/status/job_404").status_code == 404


class TestRunMirrorJob:

    def _job(self, app):
        app.mirror_jobs["job_1"] = {"id": "job_1", "status": "starting"}
        return app.mirror_jobs["job_1"]

    def test_completed(self, app):
        job = self._job(app)
        mirror = MagicMock()
        mirror.mirror = AsyncMock(return_value=MirrorResult(pages_saved=3, assets_downloaded=7))

        _run_mirror_job(app, "job_1", mirror)

        assert job["status"] == "completed"
        assert job["result"]["pages_saved"] == 3
        assert job["message"] == "Completed: 3 pages, 7 assets"
        assert job["completed_at"] is not None

    def test_failed(self, app):
        job = self._job(app)
        mirror = MagicMock()
        mirror.mirror = AsyncMock(side_effect=RuntimeError("boom"))

        _run_mirror_job(app, "job_1", mirror)

        assert job["status"] == "failed"
        assert job["message"] == "Error: boom"

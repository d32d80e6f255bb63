"""API gateway -- routes, error mapping and metrics, with stub analyzers."""

import pytest
from fastapi.testclient import TestClient

from content_quality import __version__, config
from content_quality.api.gateway import create_app
from content_quality.config import PipelineSettings, reload_settings
from content_quality.errors import PipelineInternalError
from content_quality.pipeline import QualityPipeline, Scorer

from .stubs import STAGES, stub_stages

RUN_URL = "/api/v1/quality-pipeline"

BODY = {
    "content": "Caching makes APIs fast for developers.",
    "requirements": {"targetAudience": "developers", "tone": "professional", "keywords": ["caching"]},
}


def _client(score=95.0, scorer=None):
    settings = PipelineSettings()
    pipeline = QualityPipeline(analyzers=stub_stages(score), scorer=scorer, settings=settings)
    return TestClient(create_app(settings=settings, pipeline=pipeline))


@pytest.fixture
def client():
    return _client()


class TestQualityPipelineRoute:
    """POST and GET /api/v1/quality-pipeline."""

    def test_run_approved(self, client):
        response = client.post(RUN_URL, json=BODY)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["approval"]["outcome"] == "approved"
        assert data["content"] == {"original": BODY["content"], "final": BODY["content"]}
        assert data["metadata"]["totalIterations"] == 1
        assert "processingTimeMs" in data
        assert len(data["history"]) == 1
        assert data["report"]

    def test_snake_case_accepted(self, client):
        body = {
            "content": BODY["content"],
            "requirements": {"target_audience": "developers", "tone": "professional", "keywords": ["caching"]},
        }
        assert client.post(RUN_URL, json=body).status_code == 200

    def test_custom_criteria(self, client):
        body = {
            **BODY,
            "options": {"maxRefinementIterations": 1, "approvalCriteria": {"minimumOverallScore": 99}},
        }
        data = client.post(RUN_URL, json=body).json()
        assert data["success"] is False
        assert data["metadata"]["options"]["approvalCriteria"]["minimumOverallScore"] == 99.0
        assert data["metadata"]["options"]["maxRefinementIterations"] == 1

    def test_empty_content(self, client):
        response = client.post(RUN_URL, json={**BODY, "content": "   "})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert "content" in response.json()["detail"]

    def test_missing_requirements(self, client):
        response = client.post(RUN_URL, json={"content": "Some text."})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_wrong_body_types(self, client):
        response = client.post(RUN_URL, json={**BODY, "content": ["not", "text"]})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["status_code"] == 400

    def test_malformed_json(self, client):
        response = client.post(RUN_URL, content="{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_zero_iterations_rejected(self, client):
        response = client.post(RUN_URL, json={**BODY, "options": {"maxRefinementIterations": 0}})
        assert response.status_code == 400

    def test_internal_error_is_generic(self):
        class BrokenScorer(Scorer):
            def aggregate(self, results, revision=0):
                raise KeyError("secret weights table")

        client = _client(scorer=BrokenScorer())
        response = client.post(RUN_URL, json=BODY)
        assert response.status_code == 500
        assert response.json()["error"] == "pipeline_internal_error"
        assert response.json()["detail"] == PipelineInternalError.public_message
        assert "secret" not in response.text

    def test_status(self, client):
        response = client.get(RUN_URL)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert data["version"] == __version__
        assert data["stages"] == STAGES
        assert data["thresholds"]["minimumOverallScore"] == 80.0
        assert "automated-refinement" in data["features"]


class TestHealthAndMetrics:
    """GET /health and GET /metrics."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["stages"] == len(STAGES)
        assert data["uptime_seconds"] >= 0

    def test_metrics_start_empty(self, client):
        data = client.get("/metrics").json()
        assert data["runs_completed"] == 0
        assert data["approval_rate"] == 0.0

    def test_metrics_count_runs(self, client):
        client.post(RUN_URL, json=BODY)
        client.post(RUN_URL, json={**BODY, "options": {"approvalCriteria": {"minimumOverallScore": 99}}})
        client.post(RUN_URL, json={**BODY, "content": ""})
        data = client.get("/metrics").json()
        assert data["runs_completed"] == 2
        assert data["runs_failed"] == 1
        assert data["approvals"] == 1
        assert data["approval_rate"] == 0.5


class TestSettingsReload:
    """An app built without settings follows reload_settings() between requests."""

    @pytest.fixture
    def app_client(self, monkeypatch):
        monkeypatch.delenv("QUALITY_MIN_SCORE", raising=False)
        reload_settings()
        yield monkeypatch, TestClient(create_app(pipeline=QualityPipeline(analyzers=stub_stages(70.0))))
        config._settings = None

    def test_reload_applies_to_next_request(self, app_client):
        env, client = app_client
        body = {**BODY, "options": {"maxRefinementIterations": 1}}

        assert client.get(RUN_URL).json()["thresholds"]["minimumOverallScore"] == 80.0
        assert client.post(RUN_URL, json=body).json()["success"] is False

        env.setenv("QUALITY_MIN_SCORE", "60")
        reload_settings()
        assert client.get(RUN_URL).json()["thresholds"]["minimumOverallScore"] == 60.0
        assert client.post(RUN_URL, json=body).json()["success"] is True

from __future__ import annotations

from server.core.llm import EstimationError
from server.routes.estimate import PREVIOUS_SCOPE_PLACEHOLDER


def test_upload_extracts_text_and_returns_estimate(client, estimator, pdf_factory) -> None:
    pdf = pdf_factory("Build a customer portal\nwith single sign-on")

    response = client.post("/api/estimate/upload", files={"file": ("scope.pdf", pdf, "application/pdf")})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == estimator.response
    scope_text, feedback = estimator.calls[0]
    assert "Build a customer portal" in scope_text
    assert feedback is None


def test_upload_rejects_non_pdf(client, estimator) -> None:
    response = client.post("/api/estimate/upload", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 422
    assert "upload a PDF" in response.json()["detail"]
    assert estimator.calls == []


def test_upload_rejects_unreadable_pdf(client, estimator) -> None:
    response = client.post("/api/estimate/upload", files={"file": ("scope.pdf", b"not a pdf", "application/pdf")})

    assert response.status_code == 422
    assert estimator.calls == []


def test_upload_requires_file_field(client) -> None:
    response = client.post("/api/estimate/upload", files={"document": ("scope.pdf", b"%PDF", "application/pdf")})
    assert response.status_code == 422


def test_feedback_regenerates_from_scope_text(client, estimator) -> None:
    estimator.response = "# Estimate\n## Risks"

    response = client.post(
        "/api/estimate/feedback",
        json={"scopeText": "# Estimate", "feedback": "add a risk section"},
    )

    assert response.status_code == 200
    assert response.text == "# Estimate\n## Risks"
    assert estimator.calls == [("# Estimate", "add a risk section")]


def test_feedback_with_blank_scope_uses_placeholder(client, estimator) -> None:
    client.post("/api/estimate/feedback", json={"scopeText": "  ", "feedback": "shorter timeline"})
    assert estimator.calls == [(PREVIOUS_SCOPE_PLACEHOLDER, "shorter timeline")]


def test_estimation_failure_is_bad_gateway(client, estimator) -> None:
    estimator.error = EstimationError("Claude API call failed: overloaded")

    response = client.post("/api/estimate/feedback", json={"scopeText": "# Estimate", "feedback": "more"})

    assert response.status_code == 502
    assert response.json() == {"detail": "Claude API call failed: overloaded"}


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}

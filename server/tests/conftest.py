from __future__ import annotations

import io
from typing import Callable, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from reportlab.pdfgen import canvas

from server.api import create_app
from server.dependencies import get_estimator


class FakeEstimator:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.response = "# Estimate\n\n| Task | Hours |\n|---|---:|\n| Build | 40 |"
        self.error: Optional[Exception] = None

    def generate_estimate(self, scope_text: str, feedback: Optional[str] = None) -> str:
        self.calls.append((scope_text, feedback))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def estimator() -> FakeEstimator:
    return FakeEstimator()


@pytest.fixture
def app(estimator: FakeEstimator):
    application = create_app()
    application.dependency_overrides[get_estimator] = lambda: estimator
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def pdf_factory() -> Callable[[str], bytes]:
    def _create(text: str) -> bytes:
        buffer = io.BytesIO()
        canv = canvas.Canvas(buffer)
        y = 800
        for line in text.splitlines():
            canv.drawString(72, y, line)
            y -= 14
        canv.showPage()
        canv.save()
        return buffer.getvalue()

    return _create

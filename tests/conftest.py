from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import pytest

from scope_estimator.export import DownloadSink
from scope_estimator.models import ExportRequest, Outcome, SourceDocument, Success
from scope_estimator.workflow import EstimateWorkflow


class FakeEstimationClient:
    """Stands in for ``EstimationClient``; records calls and can hold them open."""

    def __init__(self) -> None:
        self.uploads: List[SourceDocument] = []
        self.refinements: List[tuple] = []
        self.exports: List[ExportRequest] = []
        self.upload_outcome: Outcome = Success("# Estimate")
        self.refine_outcome: Outcome = Success("# Estimate\n## Risks")
        self.export_outcome: Outcome = Success(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\nbinary")
        self.upload_gate: Optional[asyncio.Event] = None
        self.refine_gate: Optional[asyncio.Event] = None
        self.export_gate: Optional[asyncio.Event] = None

    async def upload_document(self, document: SourceDocument) -> Outcome:
        self.uploads.append(document)
        if self.upload_gate is not None:
            await self.upload_gate.wait()
        return self.upload_outcome

    async def refine_estimate(self, scope_text: str, feedback: str) -> Outcome:
        self.refinements.append((scope_text, feedback))
        if self.refine_gate is not None:
            await self.refine_gate.wait()
        return self.refine_outcome

    async def export_estimate(self, request: ExportRequest) -> Outcome:
        self.exports.append(request)
        if self.export_gate is not None:
            await self.export_gate.wait()
        return self.export_outcome


@pytest.fixture
def fake_client() -> FakeEstimationClient:
    return FakeEstimationClient()


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    target = tmp_path / "downloads"
    target.mkdir()
    return target


@pytest.fixture
def workflow(fake_client: FakeEstimationClient, download_dir: Path) -> EstimateWorkflow:
    return EstimateWorkflow(fake_client, sink=DownloadSink(download_dir))  # type: ignore[arg-type]


@pytest.fixture
def scope_pdf() -> SourceDocument:
    return SourceDocument(filename="scope.pdf", content=b"%PDF-1.4 scope of work", media_type="application/pdf")

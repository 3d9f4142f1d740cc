from __future__ import annotations

import asyncio
from pathlib import Path

from scope_estimator.errors import DownloadError, ServiceError
from scope_estimator.export import DownloadSink, ExportDispatcher
from scope_estimator.models import ExportRequest, Failure, OutputKind, Success


def test_sink_uses_fixed_filenames(tmp_path: Path) -> None:
    sink = DownloadSink(tmp_path)
    assert sink.target_for(OutputKind.PDF) == tmp_path / "estimation.pdf"
    assert sink.target_for(OutputKind.DOCX) == tmp_path / "estimation.docx"


def test_sink_writes_bytes_and_leaves_no_temp_file(tmp_path: Path) -> None:
    payload = b"PK\x03\x04" + bytes(range(256))

    path = DownloadSink(tmp_path).save(payload, OutputKind.DOCX)

    assert path.read_bytes() == payload
    assert [p.name for p in tmp_path.iterdir()] == ["estimation.docx"]


def test_sink_repeated_saves_replace_the_file(tmp_path: Path) -> None:
    sink = DownloadSink(tmp_path)
    sink.save(b"%PDF-first", OutputKind.PDF)
    path = sink.save(b"%PDF-second", OutputKind.PDF)

    assert path.read_bytes() == b"%PDF-second"
    assert [p.name for p in tmp_path.iterdir()] == ["estimation.pdf"]


def test_sink_creates_missing_directory(tmp_path: Path) -> None:
    path = DownloadSink(tmp_path / "exports" / "latest").save(b"%PDF", OutputKind.PDF)
    assert path.exists()


def test_sink_failure_is_a_download_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")

    try:
        DownloadSink(blocker).save(b"%PDF", OutputKind.PDF)
    except DownloadError as exc:
        assert "estimation.pdf" in str(exc)
    else:  # pragma: no cover - the save must fail
        raise AssertionError("expected DownloadError")


class _Source:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.requests = []

    async def export_estimate(self, request: ExportRequest):
        self.requests.append(request)
        return self.outcome


def test_dispatcher_hands_payload_to_sink(tmp_path: Path) -> None:
    source = _Source(Success(b"%PDF-1.7 report"))
    dispatcher = ExportDispatcher(source, DownloadSink(tmp_path))

    outcome = asyncio.run(dispatcher.dispatch(ExportRequest("# Estimate", OutputKind.PDF)))

    assert outcome == Success(tmp_path / "estimation.pdf")
    assert (tmp_path / "estimation.pdf").read_bytes() == b"%PDF-1.7 report"
    assert source.requests == [ExportRequest("# Estimate", OutputKind.PDF)]


def test_dispatcher_passes_failures_through(tmp_path: Path) -> None:
    failure = Failure(ServiceError("scopeText is required", 400))
    dispatcher = ExportDispatcher(_Source(failure), DownloadSink(tmp_path))

    outcome = asyncio.run(dispatcher.dispatch(ExportRequest("# Estimate", OutputKind.DOCX)))

    assert outcome is failure
    assert list(tmp_path.iterdir()) == []

"""Export dispatch and local persistence of exported estimates."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Optional, Protocol

from .config import DOWNLOAD_DIR
from .errors import DownloadError
from .models import ExportRequest, Failure, Outcome, OutputKind, Success


LOGGER = logging.getLogger(__name__)


class ExportSource(Protocol):
    async def export_estimate(self, request: ExportRequest) -> Outcome[bytes]:
        ...


class DownloadSink:
    """Saves export payloads as ``estimation.<ext>`` inside ``directory``.

    The payload is staged in a temporary file next to the target and moved
    into place, so a repeated save simply replaces the previous file. The
    temporary file never outlives the call.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self.directory = Path(directory) if directory is not None else DOWNLOAD_DIR

    def target_for(self, kind: OutputKind) -> Path:
        return self.directory / kind.filename

    def save(self, payload: bytes, kind: OutputKind) -> Path:
        target = self.target_for(kind)
        tmp_path: Optional[Path] = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                dir=self.directory,
                prefix=f".{kind.filename}.",
                suffix=".part",
                delete=False,
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(payload)
                tmp.flush()
            os.replace(tmp_path, target)
        except OSError as exc:
            raise DownloadError(f"Unable to save {target.name}: {exc}") from exc
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()

        LOGGER.info("Saved %s (%d bytes)", target, len(payload))
        return target


class ExportDispatcher:
    """Fetches the binary export for a request and hands it to the sink."""

    def __init__(self, source: ExportSource, sink: DownloadSink) -> None:
        self.source = source
        self.sink = sink

    async def dispatch(self, request: ExportRequest) -> Outcome[Path]:
        outcome = await self.source.export_estimate(request)
        if isinstance(outcome, Failure):
            return outcome
        try:
            path = self.sink.save(outcome.payload, request.kind)
        except DownloadError as exc:
            LOGGER.warning("%s", exc)
            return Failure(exc)
        return Success(path)


__all__ = ["DownloadSink", "ExportDispatcher", "ExportSource"]

"""Data types shared by the workflow, transport and export layers."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Generic, Optional, TypeVar, Union

from .config import EXPORT_BASENAME, EXPORT_DOCX_PATH, EXPORT_PDF_PATH
from .errors import EstimatorError

T = TypeVar("T")


@dataclass(frozen=True)
class SourceDocument:
    """An uploaded scope document: raw bytes plus their declared media type."""

    filename: str
    content: bytes
    media_type: str = "application/pdf"

    @classmethod
    def from_path(cls, path: Path, media_type: Optional[str] = None) -> "SourceDocument":
        if media_type is None:
            guessed, _ = mimetypes.guess_type(path.name)
            media_type = guessed or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), media_type=media_type)

    def __repr__(self) -> str:
        return f"SourceDocument(filename={self.filename!r}, size={len(self.content)}, media_type={self.media_type!r})"


class OutputKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def filename(self) -> str:
        return f"{EXPORT_BASENAME}.{self.extension}"

    @property
    def endpoint(self) -> str:
        return EXPORT_PDF_PATH if self is OutputKind.PDF else EXPORT_DOCX_PATH

    @property
    def media_type(self) -> str:
        if self is OutputKind.PDF:
            return "application/pdf"
        return "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass(frozen=True)
class ExportRequest:
    """Estimate text snapshot paired with the requested output kind."""

    estimate_text: str
    kind: OutputKind


class Action(str, Enum):
    INGEST = "ingest"
    REGENERATE = "regenerate"
    EXPORT = "export"


class ActionStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    error: EstimatorError

    @property
    def ok(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return str(self.error)


Outcome = Union[Success[T], Failure]


__all__ = [
    "Action",
    "ActionStatus",
    "ExportRequest",
    "Failure",
    "Outcome",
    "OutputKind",
    "SourceDocument",
    "Success",
]

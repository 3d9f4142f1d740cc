"""Scope Estimator - upload a scope document, refine the estimate, export it."""

__version__ = "0.1.0"

from .errors import (
    ActionInProgressError,
    DownloadError,
    EstimatorError,
    ServiceError,
    TransportError,
    ValidationError,
)
from .export import DownloadSink, ExportDispatcher
from .models import ExportRequest, OutputKind, SourceDocument
from .rendering import parse_estimate, render_html, render_plain
from .state import WorkflowState
from .transport import EstimationClient
from .workflow import EstimateWorkflow

__all__ = [
    'ActionInProgressError',
    'DownloadError',
    'DownloadSink',
    'EstimateWorkflow',
    'EstimationClient',
    'EstimatorError',
    'ExportDispatcher',
    'ExportRequest',
    'OutputKind',
    'ServiceError',
    'SourceDocument',
    'TransportError',
    'ValidationError',
    'WorkflowState',
    'parse_estimate',
    'render_html',
    'render_plain',
]

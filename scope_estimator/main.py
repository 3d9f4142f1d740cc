"""Command-line front end for the estimate workflow."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .config import BASE_URL, DEBUG, DOWNLOAD_DIR, LOG_LEVEL, REQUEST_TIMEOUT_SECONDS
from .errors import EstimatorError, ValidationError
from .export import DownloadSink
from .models import Action, OutputKind
from .rendering import parse_estimate, render_plain
from .transport import EstimationClient
from .workflow import EstimateWorkflow


INTERACTIVE_HELP = """Commands:
  feedback <text>   regenerate the estimate with feedback
  show              print the current estimate
  export pdf|docx   save the estimate as estimation.pdf / estimation.docx
  reload            upload the document again
  quit              leave"""

_ACTION_LABELS = {
    Action.INGEST: "Error uploading PDF",
    Action.REGENERATE: "Error sending feedback",
    Action.EXPORT: "Error downloading file",
}


def _print_error(action: Action, error: EstimatorError) -> None:
    print(f"[ERROR] {_ACTION_LABELS[action]}: {error}")


def _print_estimate(workflow: EstimateWorkflow) -> None:
    print()
    print(render_plain(parse_estimate(workflow.state.estimate_text)))
    print()


async def run_batch(
    workflow: EstimateWorkflow,
    document: Path,
    feedback: List[str],
    exports: List[OutputKind],
) -> int:
    """Generate, refine and export in one pass. Returns a process exit code."""

    workflow.select_document_path(document)
    print(f"[INFO] Generating estimate from {document.name}...")
    if await workflow.submit_document() is None:
        return 1
    print("[OK] Estimate generated")

    for note in feedback:
        print(f"[INFO] Regenerating with feedback: {note}")
        if await workflow.submit_feedback(note) is None and workflow.state.feedback_text.strip():
            return 1

    _print_estimate(workflow)

    for kind in exports:
        path = await workflow.request_export(kind)
        if path is None:
            return 1
        print(f"[OK] Saved to: {path}")
    return 0


async def run_interactive(
    workflow: EstimateWorkflow,
    document: Path,
    read_line: Callable[[str], str] = input,
) -> int:
    """Prompt loop over a single session."""

    workflow.select_document_path(document)
    print(f"[INFO] Generating estimate from {document.name}...")
    if await workflow.submit_document() is not None:
        _print_estimate(workflow)
    print(INTERACTIVE_HELP)

    while True:
        try:
            raw = read_line("estimate> ").strip()
        except EOFError:
            break
        if not raw:
            continue
        command, _, argument = raw.partition(" ")
        command = command.lower()
        try:
            if command in {"quit", "exit", "q"}:
                break
            elif command == "show":
                if workflow.state.has_estimate:
                    _print_estimate(workflow)
                else:
                    print("[WARN] No estimate yet")
            elif command == "feedback":
                if not argument.strip():
                    print("[WARN] Feedback cannot be empty")
                    continue
                if await workflow.submit_feedback(argument) is not None:
                    _print_estimate(workflow)
            elif command == "export":
                path = await workflow.request_export(argument.strip().lower())
                if path is not None:
                    print(f"[OK] Saved to: {path}")
            elif command == "reload":
                if await workflow.submit_document() is not None:
                    _print_estimate(workflow)
            else:
                print(INTERACTIVE_HELP)
        except ValidationError as exc:
            print(f"[WARN] {exc}")
    return 0


async def _run(args: argparse.Namespace) -> int:
    async with EstimationClient(base_url=args.base_url, timeout=args.timeout) as client:
        workflow = EstimateWorkflow(client, sink=DownloadSink(args.output_dir))
        workflow.add_error_handler(_print_error)
        if args.interactive:
            return await run_interactive(workflow, args.document)
        exports = [OutputKind(kind) for kind in args.export]
        return await run_batch(workflow, args.document, args.feedback, exports)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a project estimate from a scope document and refine it with feedback"
    )
    parser.add_argument('document', type=Path, help="Scope of work PDF to estimate")
    parser.add_argument(
        '--feedback',
        action='append',
        default=[],
        help="Feedback used to regenerate the estimate (repeatable, applied in order)"
    )
    parser.add_argument(
        '--export',
        action='append',
        default=[],
        choices=[kind.value for kind in OutputKind],
        help="Export the final estimate (repeatable)"
    )
    parser.add_argument(
        '--output-dir',
        type=Path,
        default=DOWNLOAD_DIR,
        help=f"Directory for exported files (default: {DOWNLOAD_DIR})"
    )
    parser.add_argument(
        '--base-url',
        default=BASE_URL,
        help=f"Estimation service URL (default: {BASE_URL})"
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=REQUEST_TIMEOUT_SECONDS,
        help="Per-request timeout in seconds (default: none)"
    )
    parser.add_argument(
        '--interactive',
        action='store_true',
        help="Keep the session open for feedback and exports"
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        default=DEBUG,
        help="Enable debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Command-line interface."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, LOG_LEVEL, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("\n\n[WARN] Cancelled by user")
        sys.exit(130)
    except ValidationError as e:
        print(f"\n[ERROR] {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == '__main__':
    main()

"""Command-line interface for the OCR label verifier."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from ocr_verifier.annotations import DEFAULT_EXPORT_NAME
from ocr_verifier.collector import AcquisitionError, AcquisitionFailed, folder_readers
from ocr_verifier.report import build_report, format_report
from ocr_verifier.session import ReviewSession, SessionConfig


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        force=True,
    )

    # PIL logs every decoded image header at DEBUG level.
    if not verbose:
        logging.getLogger("PIL").setLevel(logging.WARNING)


def build_session(args: argparse.Namespace) -> ReviewSession:
    config = SessionConfig(comparison_file=args.compare)
    if getattr(args, "export_name", None):
        config.export_name = args.export_name
    return ReviewSession(config)


def load_source(session: ReviewSession, source: Path) -> None:
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {source}")
    primary, fallback = folder_readers(source)
    if not session.open(primary, fallback):
        raise AcquisitionFailed(f"No files found in {source}")


def handle_review(args: argparse.Namespace) -> None:
    from ocr_verifier.review_tk import TkReviewer

    session = build_session(args)
    if args.source is not None:
        load_source(session, Path(args.source))
    reviewer = TkReviewer(session, export_dir=args.export_dir)
    try:
        reviewer.run()
    finally:
        session.close()


def handle_check(args: argparse.Namespace) -> None:
    session = build_session(args)
    load_source(session, Path(args.source))
    try:
        report = build_report(session.folder_name, session.items, session.annotation_candidates)
        print(format_report(report))
    finally:
        session.close()


def handle_export(args: argparse.Namespace) -> None:
    session = build_session(args)
    load_source(session, Path(args.source))
    try:
        path = session.export(args.output_dir)
        if path is None:
            logging.warning("Nothing to export from %s", args.source)
    finally:
        session.close()


def add_source_arguments(parser: argparse.ArgumentParser, *, required: bool) -> None:
    parser.add_argument(
        "--source",
        type=Path,
        required=required,
        help="Dataset folder (annotation .txt plus image subfolders) or a ZIP archive of one.",
    )
    parser.add_argument(
        "--compare",
        type=Path,
        help="Optional second annotation file whose labels are shown as conflict candidates.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    review_parser = subparsers.add_parser(
        "review",
        help="Open the Tkinter reviewer to verify and correct labels.",
    )
    add_source_arguments(review_parser, required=False)
    review_parser.add_argument(
        "--export-dir",
        type=Path,
        default=Path("."),
        help="Directory that receives the exported annotation file (default: current directory).",
    )
    review_parser.add_argument(
        "--export-name",
        help=f"File name of the exported annotation file (default: {DEFAULT_EXPORT_NAME}).",
    )
    review_parser.set_defaults(func=handle_review)

    check_parser = subparsers.add_parser(
        "check",
        help="Report matched, missing-image and orphan entries for a dataset.",
    )
    add_source_arguments(check_parser, required=True)
    check_parser.set_defaults(func=handle_check)

    export_parser = subparsers.add_parser(
        "export",
        help="Rewrite a dataset's labels, orphans included, as a single annotation file.",
    )
    add_source_arguments(export_parser, required=True)
    export_parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory that receives the annotation file (default: current directory).",
    )
    export_parser.add_argument(
        "--export-name",
        help=f"File name of the written annotation file (default: {DEFAULT_EXPORT_NAME}).",
    )
    export_parser.set_defaults(func=handle_export)

    return parser


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        args.func(args)
    except AcquisitionError as exc:
        logging.error("Could not read dataset: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
CMR Delivery Note Extraction - Command Line Interface.

Entry point for the ``cmr-notes`` console script. Every subcommand works
on the persisted result store, so rows collected by one ``extract`` run
are available to later ``list``, ``export`` and ``clear`` calls.

Usage:
    cmr-notes extract scans/*.pdf --concurrency 2
    cmr-notes list --sort aantal2 --desc --filter BLOK
    cmr-notes show <row-id>
    cmr-notes issues
    cmr-notes export --csv outputs/cmr-notes.csv
    cmr-notes export --tsv | pbcopy
    cmr-notes clear
    cmr-notes serve --port 3000

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from cmr_notes.config import ConfigurationManager
from cmr_notes.utils.logger import get_logger, set_level, setup_logger_from_config
from cmr_notes.utils.exceptions import DeliveryNoteError

logger = get_logger(__name__)

LIST_COLUMNS = [
    ('ID', 'id', 36),
    ('File', 'file_name', 24),
    ('Pg', 'page_index', 3),
    ('Datum', 'datum', 12),
    ('Aantal', 'aantal', 8),
    ('Unit', 'unit', 5),
    ('H.enkel', 'hoogte_enkel', 7),
    ('H.stack', 'hoogte_stack', 7),
    ('Aantal2', 'aantal2', 7),
    ('Pallet', 'pallet', 6),
]


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command-line parser.

    Returns:
        Configured ArgumentParser with one subparser per command.
    """
    from cmr_notes.output_handler.result_store import SORTABLE_FIELDS

    parser = argparse.ArgumentParser(
        prog="cmr-notes",
        description="Extract delivery notes from scanned CMR shipment PDFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Extract notes from scans:
        cmr-notes extract scan1.pdf scan2.pdf

    Review and export:
        cmr-notes list --sort datum
        cmr-notes export --csv cmr-notes.csv
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and run the derivation self-check"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log errors"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Process PDFs into rows")
    extract.add_argument("files", nargs="+", help="PDF files to process")
    extract.add_argument(
        "--concurrency", "-k",
        type=int,
        default=None,
        help="Pages processed at once (default: from config)"
    )
    extract.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="Extraction service URL (default: from config)"
    )

    list_cmd = subparsers.add_parser("list", help="Show stored rows")
    list_cmd.add_argument("--sort", choices=SORTABLE_FIELDS, default=None, help="Sort field")
    list_cmd.add_argument("--desc", action="store_true", help="Sort descending")
    list_cmd.add_argument("--filter", default="", help="Case-insensitive search term")

    show = subparsers.add_parser("show", help="Show one row in detail")
    show.add_argument("row_id", metavar="ID", help="Row id from 'list'")

    subparsers.add_parser("issues", help="List all warnings")

    export = subparsers.add_parser("export", help="Export stored rows")
    target = export.add_mutually_exclusive_group(required=True)
    target.add_argument("--csv", metavar="PATH", help="Write CSV to PATH")
    target.add_argument("--tsv", action="store_true", help="Print TSV to stdout")
    target.add_argument("--xlsx", metavar="PATH", help="Write an Excel workbook to PATH")

    subparsers.add_parser("clear", help="Remove all rows and stored state")

    serve = subparsers.add_parser("serve", help="Run the extraction service")
    serve.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: from config)")

    return parser


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load configuration and set up logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)
    setup_logger_from_config()

    if args.debug:
        set_level("DEBUG")
    elif args.quiet:
        set_level("ERROR")

    logger.debug(f"cmr-notes {config.get('project.version', '1.0.0')} ({args.command})")

    if args.debug:
        from cmr_notes.postprocessor.processor import run_self_check
        run_self_check()

    return config


def build_controller(concurrency: Optional[int] = None, endpoint: Optional[str] = None):
    """Create a controller wired to the persisted state, with rows loaded."""
    from cmr_notes.output_handler.state_store import StateStore
    from cmr_notes.pipeline.controller import PipelineController

    controller = PipelineController(
        state_store=StateStore(),
        concurrency=concurrency,
        endpoint=endpoint,
    )
    controller.load()
    return controller


def format_cell(value, width: int) -> str:
    text = '' if value is None else str(value)
    if len(text) > width:
        text = text[:width - 1] + '~'
    return text.ljust(width)


def cmd_extract(args: argparse.Namespace) -> int:
    controller = build_controller(args.concurrency, args.endpoint)

    ingestion = controller.add_files(args.files)
    if not ingestion.accepted:
        logger.error("No PDF files to process")
        return 1

    before = len(controller.results)
    summary = asyncio.run(controller.process_queue())

    print(controller.progress.status_text())
    if summary is not None:
        print(
            f"Pages: {summary.succeeded} ok, {len(summary.failed)} failed of {summary.total}; "
            f"new rows: {len(controller.results) - before}"
        )
        for task, error in summary.failed:
            print(f"  failed {task}: {error}")
    print(f"Issues: {controller.results.issues_text()}")

    return 1 if summary is not None and summary.failed else 0


def cmd_list(args: argparse.Namespace) -> int:
    controller = build_controller()
    rows = controller.results.view(args.sort, args.desc, args.filter)

    print(' '.join(format_cell(header, width) for header, _, width in LIST_COLUMNS) + ' Warnings')
    for row in rows:
        cells = [format_cell(getattr(row, name), width) for _, name, width in LIST_COLUMNS]
        print(' '.join(cells) + ' ' + ', '.join(row.warnings))
    print(f"{len(rows)} of {len(controller.results)} row(s)")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    controller = build_controller()
    row = controller.results.get(args.row_id)
    if row is None:
        logger.error(f"No row with id {args.row_id}")
        return 1

    for label, value in row.details():
        print(f"{label:<14} {value}")
    return 0


def cmd_issues(args: argparse.Namespace) -> int:
    controller = build_controller()
    print(controller.results.issues_text())
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    from cmr_notes.output_handler.handler import OutputHandler

    controller = build_controller()
    rows = controller.results.rows
    output = OutputHandler()

    if args.tsv:
        text = output.to_tsv(rows)
        if text is not None:
            print(text)
        return 0

    if args.csv:
        path = output.to_csv(rows, args.csv)
    else:
        path = output.to_excel(rows, args.xlsx)

    if path is None:
        print("Nothing to export.")
    else:
        print(f"Exported {len(rows)} row(s) to {path}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    controller = build_controller()
    controller.clear_all()
    print(controller.notices[-1])
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from cmr_notes.extraction.service import run_server

    run_server(args.host, args.port)
    return 0


COMMANDS = {
    "extract": cmd_extract,
    "list": cmd_list,
    "show": cmd_show,
    "issues": cmd_issues,
    "export": cmd_export,
    "clear": cmd_clear,
    "serve": cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    try:
        initialize_system(args)
        return COMMANDS[args.command](args)

    except DeliveryNoteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())

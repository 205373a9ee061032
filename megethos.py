#!/usr/bin/env python3
"""
Megethos - Ancient Greek μέγεθος (magnitude, size)

Searches the entire history of a git repository for large files and
determines their current in-use status.

A file is "in-use" when its path exists at the tip of one of the refs passed
with --refs. Every other large (blob, path) pair found anywhere in history is
"not-in-use". These are the files that still take up space in the repository
even though no selected branch shows them any more.

Usage:
    megethos                                  # not-in-use files >= 1 MB, relative to HEAD
    megethos -t 10 -k all                     # everything >= 10 MB
    megethos --refs=-all --output-refs        # in-use relative to every ref, list the refs
    megethos -z --format='{path}' | xargs -0  # NUL-terminated paths only
    megethos -t 5 --save-defaults             # remember options for later runs

Records go to stdout; status messages, progress and the summary go to stderr.
"""

import argparse
import logging
import os
import pathlib
import sys
from typing import Optional, TextIO

from rich.logging import RichHandler

from auxiliary import format_bytes, format_path_for_display
from blob_aggregator import BlobKind, BlobTable, aggregate
from blob_scanner import iter_large_entries, threshold_bytes, walk_revisions
from console_ui import ConsoleUI
from git_repository import GitCommandError, GitRepository, RepositoryQueries
from megethos_config import ConfigError, ConfigManager, MegethosConfig
from path_index import PathIndex, build_path_index
from record_emitter import SORT_ORDERS, DisplayKind, OutputTemplate, TemplateError, emit_records, sort_records
from ref_resolver import InvalidRefError, describe_refs, resolve_refs

__version__ = "1.0.0"

EXIT_OK = 0
EXIT_REPOSITORY_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130
EXIT_BROKEN_PIPE = 141

LOGGER = logging.getLogger(__name__)


class Megethos:
    """Main application class for the megethos large file finder"""

    def __init__(
        self,
        config: MegethosConfig,
        repo: RepositoryQueries,
        ui: Optional[ConsoleUI] = None,
        output: Optional[TextIO] = None,
    ):
        self.config = config
        self.repo = repo
        self.ui = ui or ConsoleUI()
        self.output = output if output is not None else sys.stdout

    def show_configuration(self):
        """Show the effective options"""
        self.ui.show_configuration(
            {
                "Threshold": f"{self.config.threshold} MB",
                "Kind": self.config.kind,
                "Refs": describe_refs(self.config.refs),
                "Format": self.config.output_format,
                "Terminator": "NUL" if self.config.null else "newline",
                "Workers": str(self.config.workers),
                "Sort": self.config.sort,
            }
        )

    # -- scanning ------------------------------------------------------------

    def index_current_paths(self) -> PathIndex:
        """Resolve the refs and index the paths at the tip of every ref"""
        all_refs = self.repo.list_refs()
        selected = resolve_refs(self.repo, self.config.refs, all_refs)

        self.ui.print_info(
            f"Finding {self.config.kind} files of {self.config.threshold} MB or larger.  "
            f'Refs used to determine "in-use" status: {describe_refs(self.config.refs)}'
        )

        with self.ui.create_activity_progress() as progress:
            task = progress.add_task("Indexing current ref trees...", total=None)
            path_index = build_path_index(self.repo, all_refs, selected)
            progress.update(
                task,
                description=f"Indexed {len(path_index.all_paths):,} current paths "
                f"({len(path_index.selected_paths):,} in selected refs)",
            )

        return path_index

    def scan_history(self, path_index: PathIndex) -> BlobTable:
        """Scan every reachable revision and aggregate the large blobs"""
        revisions = walk_revisions(self.repo)
        threshold = threshold_bytes(self.config.threshold)
        LOGGER.debug("Scanning %d revisions for blobs >= %d bytes", len(revisions), threshold)

        with self.ui.create_progress() as progress:
            task = progress.add_task("Scanning history...", total=len(revisions))

            def on_revision(done: int, total: int):
                progress.update(task, completed=done)

            entries = iter_large_entries(
                self.repo, revisions, threshold, workers=self.config.workers, progress_callback=on_revision
            )
            table = aggregate(entries, path_index)

        LOGGER.debug("Aggregated %d (blob, path) records", len(table))
        return table

    # -- reporting -----------------------------------------------------------

    def summary(self, table: BlobTable, display_kind: DisplayKind, written: int):
        """Show counts and sizes per kind for the records that were written"""
        rows = []
        for kind in BlobKind:
            if not display_kind.includes(kind):
                continue
            records = [record for record in table if record.kind is kind]
            rows.append((kind.value, len(records), format_bytes(sum(record.size for record in records))))

        self.ui.console.print()
        self.ui.show_summary(rows)
        self.ui.print_success(f"{written:,} records written")

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        """Scan the repository and write the records

        Returns:
            Number of records written

        Raises:
            TemplateError: If the output format is invalid (checked before scanning)
            InvalidRefError: If a requested ref does not exist
            GitCommandError: If any git query fails
        """
        template = OutputTemplate(self.config.output_format)
        display_kind = self.config.display_kind

        path_index = self.index_current_paths()
        table = self.scan_history(path_index)

        records = sort_records(table, self.config.sort)
        written = emit_records(records, display_kind, path_index, template, self.config.terminator, self.output)
        self.output.flush()

        self.summary(table, display_kind, written)
        return written


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _split_refs(value: str) -> list[str]:
    refs = [ref.strip() for ref in value.split(",") if ref.strip()]
    if not refs:
        raise argparse.ArgumentTypeError("expected a comma-separated list of refs")
    return refs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="megethos",
        description="Megethos - find large files in git history and their current in-use status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
An 'in-use' file is one whose path is currently present at the head of one
of the refs from --refs. Options default to the values saved with
--save-defaults (see $MEGETHOS_CONFIG_DIR, default ~/.megethos).

Examples:
  megethos --threshold 5 --kind all
  megethos --refs=-all --output-refs
  megethos --format=$'{size}\\t{path}' --sort size
        """,
    )
    parser.add_argument("-t", "--threshold", type=float, help="File size threshold in MB (default: 1.0)")
    parser.add_argument(
        "-r",
        "--refs",
        type=_split_refs,
        help="Comma-separated refs that determine in-use status; '--refs=-all' uses every ref (default: HEAD)",
    )
    parser.add_argument(
        "-k",
        "--kind",
        choices=[kind.value for kind in DisplayKind],
        help="Which kind of files to show (default: not-in-use)",
    )
    parser.add_argument(
        "-f",
        "--format",
        help="Output format with placeholders {sha}, {path}, {size}, {kind}, {refs} "
        "(default: '{sha}\\t{kind}\\t{size}\\t{path}')",
    )
    parser.add_argument(
        "--output-refs",
        action=argparse.BooleanOptionalAction,
        help="Add a column listing the refs that currently contain each path",
    )
    parser.add_argument("-z", "--null", action=argparse.BooleanOptionalAction, help="NUL line termination on output")
    parser.add_argument("-j", "--workers", type=int, help="Revisions to scan in parallel (default: 1)")
    parser.add_argument("--sort", choices=SORT_ORDERS, help="Output order (default: discovery)")
    parser.add_argument("-C", "--repo", type=pathlib.Path, help="Run as if started in this directory")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print records and errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every git command")
    parser.add_argument("--save-defaults", action="store_true", help="Save the given options as defaults and exit")
    parser.add_argument("--reset-defaults", action="store_true", help="Forget saved defaults and exit")
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict:
    return {
        "threshold": args.threshold,
        "kind": args.kind,
        "refs": args.refs,
        "output_refs": args.output_refs,
        "format": args.format,
        "null": args.null,
        "workers": args.workers,
        "sort": args.sort,
    }


def prepare_stdout():
    """Write paths that are not valid UTF-8 back out as their original bytes"""
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(errors="surrogateescape")


def _silence_stdout():
    """Point stdout at devnull so the final flush at exit cannot fail again"""
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    except (OSError, ValueError) as e:
        LOGGER.debug("Could not redirect stdout after a broken pipe: %s", e)


def configure_logging(verbose: bool, ui: ConsoleUI):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=ui.error_console, show_time=False, show_path=False)],
        force=True,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    ui = ConsoleUI(quiet=args.quiet)
    configure_logging(args.verbose, ui)

    config_manager = ConfigManager()
    if args.reset_defaults:
        config_manager.reset()
        ui.print_success(f"Removed saved defaults from {config_manager.config_file}")
        return EXIT_OK

    try:
        config = config_manager.load().merge(_overrides_from_args(args))
        config.validate()
        OutputTemplate(config.output_format)
    except (ConfigError, TemplateError) as e:
        ui.print_error(str(e))
        return EXIT_INVALID_INPUT

    if args.save_defaults:
        config_manager.save(config)
        ui.print_success(f"Saved defaults to {config_manager.config_file}")
        return EXIT_OK

    prepare_stdout()
    repo_root = args.repo or pathlib.Path.cwd()
    app = Megethos(config, GitRepository(args.repo), ui)
    ui.print_header("Megethos", f"Large files in the history of {format_path_for_display(repo_root)}")
    app.show_configuration()

    try:
        app.run()
    except (InvalidRefError, TemplateError) as e:
        ui.print_error(str(e))
        return EXIT_INVALID_INPUT
    except GitCommandError as e:
        ui.print_error(str(e))
        return EXIT_REPOSITORY_ERROR
    except KeyboardInterrupt:
        ui.print_warning("\nInterrupted")
        return EXIT_INTERRUPTED
    except BrokenPipeError:
        # The reader went away, e.g. `megethos | head`
        _silence_stdout()
        return EXIT_BROKEN_PIPE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

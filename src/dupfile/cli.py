#!/usr/bin/env python3
"""
DupFile CLI — command line interface for duplicate detection and quarantine.
Runs the same engine as the GUI worker with console-based interaction.
All removals are reversible: duplicates are moved to quarantine, and purging
quarantine sends files to the system trash, never a permanent erase.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, NoReturn, Optional

logging.basicConfig(
    level=logging.ERROR,
    format="%(levelname)-8s | %(name)-25s | %(message)s"
)

from dupfile.aliases import EPILOG_TEXT, QUARANTINE_HELP_TEXT, SCAN_MODE_HELP_TEXT
from dupfile.commands import ScanCommand
from dupfile.config import AppPaths, ScanConfig
from dupfile.core.errors import DupFileError
from dupfile.core.models import DuplicateGroup, QuarantineRecord, ScanParams, ScanSession, ScanStatus
from dupfile.services.duplicate_service import DuplicateService
from dupfile.services.file_service import ShellActionsImpl
from dupfile.utils.convert_utils import ConvertUtils


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="dupfile",
            description="DupFile — duplicate file finder with a safe, restorable quarantine",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        # Scan options
        parser.add_argument(
            "--input", "-i",
            type=str,
            help="Input directory to scan for duplicates"
        )
        parser.add_argument(
            "--extensions", "-x",
            nargs="+",
            default=[],
            type=str,
            metavar='',
            help="File extensions (space separated) to include (e.g., .jpg .png)"
        )
        parser.add_argument(
            "--no-quick",
            action="store_true",
            dest="no_quick",
            help=SCAN_MODE_HELP_TEXT
        )
        parser.add_argument(
            "--threshold",
            default=ScanConfig.QUICK_SCAN_THRESHOLD,
            type=int,
            metavar='N',
            help=f"Candidate count above which quick scan prunes unique sizes. "
                 f"Default: {ScanConfig.QUICK_SCAN_THRESHOLD}"
        )
        parser.add_argument(
            "--workers",
            default=1,
            type=int,
            metavar='N',
            help="Number of hashing threads. Default: 1"
        )

        # Actions
        parser.add_argument(
            "--quarantine",
            action="store_true",
            help=QUARANTINE_HELP_TEXT
        )
        parser.add_argument(
            "--list-quarantine",
            action="store_true",
            dest="list_quarantine",
            help="List quarantined files grouped by content"
        )
        parser.add_argument(
            "--restore",
            nargs="+",
            default=[],
            type=str,
            metavar='PATH',
            help="Quarantined files to move to the restore folder"
        )
        parser.add_argument(
            "--purge-quarantine",
            action="store_true",
            dest="purge_quarantine",
            help="Send everything in quarantine to the system trash"
        )
        parser.add_argument(
            "--reveal",
            action="store_true",
            help="Show the quarantine folder in the file manager when done"
        )

        # Output & locations
        parser.add_argument(
            "--force",
            action="store_true",
            help="Skip confirmation prompts (for automation/scripts)"
        )
        parser.add_argument(
            "--data-dir",
            type=str,
            metavar='DIR',
            dest="data_dir",
            help="Keep checksum index, quarantine and restored files under DIR"
        )
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show progress and detailed messages"
        )

        return parser.parse_args(args)

    @staticmethod
    def has_quarantine_action(args: argparse.Namespace) -> bool:
        return bool(args.list_quarantine or args.restore or args.purge_quarantine)

    def validate_args(self, args: argparse.Namespace) -> None:
        """Validate command-line arguments before execution."""
        if not args.input and not self.has_quarantine_action(args):
            self.error_exit("--input is required unless --list-quarantine, --restore "
                            "or --purge-quarantine is given")

        if args.force and not (args.quarantine or args.restore or args.purge_quarantine):
            self.error_exit("--force can only be used with --quarantine, --restore or --purge-quarantine")

        if args.quarantine and not args.input:
            self.error_exit("--quarantine needs --input")

        # Prevent interactive confirmation in non-TTY environments
        needs_prompt = args.quarantine or args.restore or args.purge_quarantine
        if needs_prompt and not args.force:
            if not sys.stdin.isatty() or not sys.stdout.isatty():
                self.error_exit(
                    "Cannot request interactive confirmation in non-interactive session.\n"
                    "Use --force flag to proceed without confirmation when piping output or running in scripts."
                )

        if args.input:
            root_path = Path(args.input).expanduser().resolve()
            if not root_path.exists():
                self.error_exit(f"Directory not found: {args.input}")
            if not root_path.is_dir():
                self.error_exit(f"Path is not a directory: {args.input}")

        if args.threshold < 0:
            self.error_exit("Threshold cannot be negative")
        if args.workers < 1:
            self.error_exit("At least one worker is required")

    def create_params(self, args: argparse.Namespace) -> ScanParams:
        """Create ScanParams from CLI arguments."""
        try:
            return ScanParams(
                root_dir=str(Path(args.input).expanduser().resolve()),
                extensions=frozenset(args.extensions),
                quick_scan=not args.no_quick,
                quick_scan_threshold=args.threshold,
                workers=args.workers,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    @staticmethod
    def create_paths(args: argparse.Namespace) -> AppPaths:
        if args.data_dir:
            return AppPaths.under(args.data_dir)
        return AppPaths.default()

    def configure_logging(self) -> None:
        root = logging.getLogger()
        if os.environ.get("DEBUG"):
            root.setLevel(logging.DEBUG)
        elif self.verbose:
            root.setLevel(logging.INFO)

    def progress_callback(self, session: ScanSession) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if session.total > 0:
            percent = ConvertUtils.progress_to_percent(session.processed, session.total)
            sys.stderr.write(f"\r  [{session.stage}] {session.processed}/{session.total} ({percent})")
        else:
            sys.stderr.write(f"\r  [{session.stage}] {session.current_file}")
        sys.stderr.flush()

    def run_scan(self, command: ScanCommand, params: ScanParams) -> List[DuplicateGroup]:
        """Execute the scan workflow."""
        if self.verbose:
            mode_display = "quick" if params.quick_scan else "standard"
            print(f"Finding duplicates (mode: {mode_display}, workers: {params.workers})...")

        try:
            groups, session = command.execute(params, progress_callback=self.progress_callback)
        except DupFileError as e:
            self.error_exit(f"Scan failed: {e}")

        if self.verbose:
            sys.stderr.write("\n")
        if session.status is ScanStatus.CANCELLED:
            self.error_exit("Scan cancelled", code=130)

        if self.verbose:
            print(f"Hashed {session.processed} of {session.total} candidates, "
                  f"{session.duplicate_count} redundant copies")
        return groups

    def output_results(self, groups: List[DuplicateGroup]) -> None:
        """Output duplicate groups as plain text, largest reclaimable size first."""
        if self.quiet:
            return

        if not groups:
            print("No duplicate groups found.")
            return

        total_files = sum(g.count for g in groups)
        reclaimable = ConvertUtils.bytes_to_human(DuplicateService.reclaimable_size(groups))
        print(f"\nFound {len(groups)} duplicate groups ({total_files} files, {reclaimable} reclaimable)")

        for idx, group in enumerate(groups, 1):
            size_str = ConvertUtils.bytes_to_human(group.size)
            print(f"\n📁 Group {idx} | Size: {size_str} | Files: {group.count} | {group.checksum[:12]}")
            for file in group.files:
                marker = " ✅" if file is group.representative else ""
                print(f"   {file.path} [{ConvertUtils.timestamp_to_human(file.modified_time)}]{marker}")

    def execute_quarantine(self, command: ScanCommand, groups: List[DuplicateGroup], force: bool = False) -> None:
        """Keep the representative of every group, quarantine the rest. Always previews first."""
        if not groups:
            if not self.quiet:
                print("No duplicate groups found.")
            return

        files_to_move = DuplicateService.keep_only_one_file_per_group(groups)
        space_saved_str = ConvertUtils.bytes_to_human(DuplicateService.reclaimable_size(groups))

        # Always show preview before action (safety first)
        print()
        for idx, group in enumerate(groups, 1):
            print(f"📁 Group {idx} | Size: {ConvertUtils.bytes_to_human(group.size)} | Files: {group.count}")
            print("-" * 60)
            keeper = group.representative
            print(f"   [KEEP] {keeper.path}")
            print(f"          Modified: {ConvertUtils.timestamp_to_human(keeper.modified_time)} (oldest)")
            for file in group.redundant_files:
                print(f"   [MOVE] {file.path}")
            print()

        print("=" * 60)
        print(f"Summary: {len(groups)} files kept, {len(files_to_move)} files to quarantine")
        print(f"Quarantine folder: {command.paths.quarantine_dir}")
        print(f"Total space reclaimable: {space_saved_str}")
        print()

        if force:
            print("⚠️  WARNING: --force flag skips confirmation. Proceeding...")
        elif not self.confirm(f"Move {len(files_to_move)} files to quarantine?"):
            print("Quarantine cancelled by user.")
            return

        reports = command.quarantine_groups(groups)
        moved = sum(len(r.moved) for r in reports)
        bytes_moved = sum(r.bytes_moved for r in reports)
        failed = [failure for r in reports for failure in r.failed]

        if failed:
            print(f"\n⚠️  Partial success: {moved}/{len(files_to_move)} files moved to quarantine.")
            print(f"Left in place ({len(failed)}):")
            for path, error in failed[:5]:
                print(f"  • {os.path.basename(path)}: {error}")
            if len(failed) > 5:
                print(f"  ...and {len(failed) - 5} more files")
            moved_paths = [record.original_path for r in reports for record in r.moved]
            remaining = DuplicateService.remove_files_from_groups(groups, moved_paths)
            print(f"{len(remaining)} groups still hold duplicates; run the scan again to retry.")
        else:
            print(f"✅ Moved {moved} files to quarantine ({ConvertUtils.bytes_to_human(bytes_moved)}).")

    def output_quarantine(self, command: ScanCommand) -> None:
        groups = command.list_quarantine()
        if not groups:
            print("Quarantine is empty.")
            return

        total = sum(g.total_size for g in groups)
        print(f"Quarantine: {sum(g.count for g in groups)} files, {ConvertUtils.bytes_to_human(total)}")
        for group in groups:
            print(f"\n🔒 {group.checksum[:12]} | Files: {group.count} | {ConvertUtils.bytes_to_human(group.total_size)}")
            for record in group.records:
                moved = ConvertUtils.timestamp_to_human(record.moved_at)
                origin = f" <- {record.original_path}" if record.original_path else ""
                print(f"   {record.quarantine_path} [{moved}]{origin}")

    def execute_restore(self, command: ScanCommand, paths: List[str], force: bool = False) -> None:
        def confirm(record: QuarantineRecord) -> bool:
            return force or self.confirm(f"Restore {record.quarantine_path}?")

        restored = 0
        for path in paths:
            try:
                destination = command.restore(path, confirm)
            except DupFileError as e:
                self.warning(f"Cannot restore {path}: {e}")
                continue
            if destination is None:
                continue
            restored += 1
            if not self.quiet:
                print(f"Restored {path} -> {destination}")

        if not self.quiet:
            print(f"✅ Restored {restored} of {len(paths)} files to {command.paths.restore_dir}")

    def execute_purge(self, command: ScanCommand, force: bool = False) -> None:
        if not force and not self.confirm("Send all quarantined files to the system trash?"):
            print("Purge cancelled by user.")
            return
        purged = command.purge_quarantine()
        if not self.quiet:
            print(f"✅ Moved {purged} quarantined files to trash.")

    def confirm(self, question: str) -> bool:
        if not sys.stdin.isatty() or not sys.stdout.isatty():
            self.error_exit(
                "Lost interactive terminal during operation. "
                "Use --force to proceed in non-interactive environments."
            )
        response = input(f"{question} [y/N]: ")
        return response.strip().lower() in ("y", "yes")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Main entry point with conditional output behavior."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        self.configure_logging()

        self.validate_args(args)
        command = ScanCommand(self.create_paths(args))
        try:
            if args.input:
                params = self.create_params(args)
                if not self.quiet:
                    print(f"Scanning directory: {params.root_dir}")
                groups = self.run_scan(command, params)

                if args.quarantine:
                    self.execute_quarantine(command, groups, force=args.force)
                else:
                    self.output_results(groups)

            if args.restore:
                self.execute_restore(command, args.restore, force=args.force)
            if args.list_quarantine:
                self.output_quarantine(command)
            if args.purge_quarantine:
                self.execute_purge(command, force=args.force)

            if args.reveal:
                ShellActionsImpl().reveal_folder(command.paths.quarantine_dir)
        finally:
            command.close()

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")


def main(argv: Optional[List[str]] = None) -> None:
    """Application entry point."""
    # Fix encoding for Windows consoles to prevent UnicodeEncodeError
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding='utf-8')

    app = CLIApplication()
    try:
        app.run(argv)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(130)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

import argparse
import mimetypes
import sys
from collections.abc import Sequence
from pathlib import Path

from vigilance.config.settings import Settings
from vigilance.database.connection import close_pool, init_pool
from vigilance.export.exceptions import ExportError
from vigilance.export.exporter import DATA_TYPES, build_exporter
from vigilance.export.formats import ExportFormat
from vigilance.logging.logger import Log
from vigilance.processor.models import FileStatus, Notice, UploadedFile
from vigilance.worker.intake_queue import build_intake_queue


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vigilance",
        description="Canada Vigilance adverse-event report intake",
    )
    parser.add_argument("--user", default=None, help="User the work is attributed to")
    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser("process", help="Process one or more report PDFs")
    process.add_argument("files", nargs="+", type=Path)

    narrative = commands.add_parser("narrative", help="Generate a case narrative")
    narrative.add_argument("extraction_id", type=int)
    narrative.add_argument("--instructions", default=None, help="Custom instructions")

    export = commands.add_parser("export", help="Export stored data")
    export.add_argument("data_types", nargs="+", choices=DATA_TYPES)
    export.add_argument(
        "--format",
        dest="export_format",
        default=ExportFormat.JSON.value,
        choices=[f.value for f in ExportFormat],
    )
    export.add_argument("--include-phi", action="store_true", help="Skip PHI redaction")
    export.add_argument("--output", type=Path, default=Path("."), help="Output directory")
    return parser


def read_upload(path: Path) -> UploadedFile:
    mime_type, _ = mimetypes.guess_type(path.name)
    return UploadedFile(
        filename=path.name,
        content=path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
    )


def print_notice(notice: Notice) -> None:
    stream = sys.stderr if notice.is_error else sys.stdout
    print(f"{notice.title}: {notice.description}", file=stream)


def run_process(settings: Settings, user_id: str, files: list[Path]) -> int:
    uploads = [read_upload(path) for path in files]
    with build_intake_queue(settings, user_id, notice_listener=print_notice) as queue:
        queue.submit(uploads)
        results = queue.wait()
    for progress in results:
        Log.info(
            f"{progress.name}: {progress.status}",
            extraction_id=progress.extraction_id,
            error=progress.error,
        )
    failed = len(uploads) != len(results) or any(
        p.status is not FileStatus.COMPLETED for p in results
    )
    return 1 if failed else 0


def run_narrative(
    settings: Settings, user_id: str, extraction_id: int, instructions: str | None
) -> int:
    with build_intake_queue(settings, user_id, notice_listener=print_notice) as queue:
        narrative = queue.generate_narrative(extraction_id, instructions)
    if narrative is None:
        return 1
    print(narrative.content)
    return 0


def run_export(settings: Settings, user_id: str, args: argparse.Namespace) -> int:
    exporter = build_exporter(settings, user_id)
    try:
        result = exporter.export(
            args.data_types, args.export_format, args.include_phi, user_id=user_id
        )
    except ExportError as exc:
        Log.error(f"Export failed: {exc}")
        return 1
    if result.redacted:
        print_notice(
            Notice(
                title="PHI detected and redacted",
                description="Sensitive information has been automatically redacted from the export.",
            )
        )
    args.output.mkdir(parents=True, exist_ok=True)
    target = args.output / result.filename
    target.write_text(result.content, encoding="utf-8")
    print(target)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> run one command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    user_id = args.user or settings.system_user_id
    init_pool(settings)

    try:
        if args.command == "process":
            return run_process(settings, user_id, args.files)
        if args.command == "narrative":
            return run_narrative(settings, user_id, args.extraction_id, args.instructions)
        return run_export(settings, user_id, args)
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())

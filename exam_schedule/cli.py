"""
Command-line interface for exam schedule reconciliation.
보험설계사 시험 일정 종합 파싱 CLI입니다.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

from pydantic import TypeAdapter
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .image import MAX_IMAGE_BYTES, load_image
from .pipeline import SchedulePipeline
from .regions import REGION_GROUPS, REGIONS
from .schema import ExamType, ReconcileResult, ScheduleFragment
from .store import create_store

console = Console()

_FRAGMENTS = TypeAdapter(list[ScheduleFragment])


def format_reconcile_result(result: ReconcileResult) -> None:
    """Display merged schedules and a source summary."""
    table = Table(title=f"Exam Schedules - {result.year}-{result.month:02d}")

    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Type", style="cyan")
    table.add_column("Exam Date", style="green")
    table.add_column("Time", style="green")
    table.add_column("Locations", style="white")
    table.add_column("Deadline", style="yellow")
    table.add_column("Notice", style="yellow")
    table.add_column("Source", style="magenta")

    for s in result.schedules:
        time_range = f"{s.exam_time_start or '?'}-{s.exam_time_end or '?'}" if s.exam_time_start else "-"
        deadline = f"{s.internal_deadline_date} {s.internal_deadline_time or ''}".strip() if s.internal_deadline_date else "-"
        notice = f"{s.notice_date} {s.notice_time or ''}".strip() if s.notice_date else "-"
        table.add_row(
            str(s.session_number),
            s.exam_type.value,
            s.exam_date.isoformat() if s.exam_date else "-",
            time_range,
            ", ".join(s.locations) or "-",
            deadline,
            notice,
            s.data_source.value,
        )

    console.print(table)

    summary = result.summary
    info_text = f"""
Image sessions: {summary.image_count}
Crawled rows: {summary.crawled_count} (grouped into {summary.grouped_count} dates)
Internal deadlines: {summary.internal_count}
Merged schedules: {summary.total_schedules}
Fully matched: {summary.fully_matched_count}
Partial crawl: {'yes' if summary.crawl_partial else 'no'}
    """.strip()

    console.print(Panel(info_text, title="Sources", border_style="green"))

    for err in result.source_errors:
        console.print(f"[red]SOURCE FAILED[/red] {err.source.value}: {err.message}")
    for err in result.crawl_errors:
        console.print(f"[yellow]REGION FAILED[/yellow] {err.region}({err.code}): {err.error}")


def print_validation(result: ReconcileResult) -> None:
    validation = result.validation
    if validation is None:
        return

    if validation.is_valid:
        console.print(f"  [green]VALID[/green] - {validation.total_warnings} warnings")
    else:
        console.print(f"  [red]INVALID[/red] - {validation.total_errors} errors, {validation.total_warnings} warnings")

    for issue in validation.issues:
        color = "red" if issue.level == "error" else "yellow"
        prefix = f"#{issue.session_number}: " if issue.session_number else ""
        console.print(f"  [{color}]{issue.level.upper()}[/{color}] {prefix}{issue.message}")


def print_regions() -> None:
    table = Table(title="Registry Regions")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="green")
    for region in REGIONS:
        table.add_row(region.code, region.name)
    console.print(table)

    groups = Table(title="Region Groups")
    groups.add_column("Group", style="cyan")
    groups.add_column("Cities", style="green")
    for group, cities in REGION_GROUPS.items():
        groups.add_row(group, ", ".join(cities))
    console.print(groups)


def save_results(result: ReconcileResult, output_path: Path) -> None:
    """Save reconcile result to JSON file."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.model_dump(mode="json"), f, ensure_ascii=False, indent=2)

    console.print(f"[green]V[/green] Results saved to {output_path}")


def _read_image_file(path: Path) -> tuple[bytes, str]:
    data = path.read_bytes()
    if len(data) > MAX_IMAGE_BYTES:
        raise ValueError(f"Image too large: {len(data):,} bytes (max {MAX_IMAGE_BYTES:,})")
    return load_image(data)


def _read_crawled(path: Path) -> list[ScheduleFragment]:
    """Load crawled rows saved earlier (a list, or a result/report object holding one)."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("crawled_schedules", raw.get("fragments", []))
    return _FRAGMENTS.validate_python(raw)


def build_parser() -> argparse.ArgumentParser:
    today = date.today()
    parser = argparse.ArgumentParser(
        description="Reconcile insurance exam schedules from crawl, image and internal deadline text"
    )

    parser.add_argument("--year", type=int, default=today.year, help=f"Exam year (default: {today.year})")
    parser.add_argument("--month", type=int, default=today.month, help="Month to crawl (default: current month)")

    parser.add_argument("--image", type=str, default=None, help="Schedule image (PNG/JPEG/WEBP/GIF)")

    text_group = parser.add_mutually_exclusive_group()
    text_group.add_argument("--text", type=str, default=None, help="Internal deadline text")
    text_group.add_argument("--text-file", type=str, default=None, help="File containing internal deadline text")

    parser.add_argument(
        "--exam-type",
        type=ExamType,
        choices=list(ExamType),
        default=ExamType.LIFE,
        help="Exam track for internal deadlines (default: 생보)",
    )

    parser.add_argument(
        "--crawled-json",
        type=str,
        default=None,
        help="Use previously crawled rows from JSON instead of crawling",
    )
    parser.add_argument("--no-crawl", action="store_true", help="Skip the official registry crawl")

    parser.add_argument("-o", "--output", type=str, default=None, help="Output JSON file path")
    parser.add_argument("--save", action="store_true", help="Upsert merged schedules into the schedule store")
    parser.add_argument(
        "--store",
        type=str,
        default=None,
        help="Schedule store JSON file for --save (default: SCHEDULE_STORE_PATH)",
    )
    parser.add_argument("--validate", action="store_true", help="Print validation issues")
    parser.add_argument("--list-regions", action="store_true", help="List registry regions and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_regions:
        print_regions()
        return

    if not 1 <= args.month <= 12:
        console.print(f"[red]Error:[/red] --month must be between 1 and 12, got {args.month}")
        sys.exit(1)

    settings = get_settings()
    store_path = args.store or settings.SCHEDULE_STORE_PATH
    if args.save and not store_path:
        console.print("[red]Error:[/red] --save needs a store file: pass --store PATH or set SCHEDULE_STORE_PATH")
        sys.exit(1)

    try:
        image = _read_image_file(Path(args.image)) if args.image else None
        text = Path(args.text_file).read_text(encoding="utf-8") if args.text_file else args.text
        crawled = _read_crawled(Path(args.crawled_json)) if args.crawled_json else None
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    pipeline = SchedulePipeline.from_settings(settings)
    if image is not None and pipeline.image_extractor is None:
        console.print(f"[red]Error:[/red] no API key for vision model {settings.VISION_MODEL}")
        sys.exit(1)

    console.print(f"[blue]Reconciling {args.year}-{args.month:02d}...[/blue]")
    try:
        result = asyncio.run(
            pipeline.reconcile(
                args.year,
                args.month,
                image=image,
                text=text,
                crawled=crawled,
                crawl=not args.no_crawl,
                exam_type=args.exam_type,
            )
        )
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    format_reconcile_result(result)

    if args.validate:
        print_validation(result)

    if args.output:
        save_results(result, Path(args.output))

    if args.save:
        if not result.schedules:
            console.print("[yellow]Nothing to save[/yellow]")
        else:
            report = create_store(store_path).upsert(result.schedules)
            console.print(
                f"[green]V[/green] Saved {report.success_count}/{report.total_processed} "
                f"({report.inserted} inserted, {report.updated} updated) -> {store_path}"
            )
            for err in report.errors:
                console.print(f"  [red]ERROR[/red] #{err.session_number}: {err.error}")


if __name__ == "__main__":
    main()

"""Layout reconstruction CLI."""

from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from docground.config import settings
from docground.errors import DocumentLoadError
from docground.log_utils import setup_logging
from docground.models import ExtractionResult
from docground.pipeline import (
    PageOrchestrator,
    PDFRenderer,
    TesseractOCR,
    search_chunks,
)

app = typer.Typer(
    name="docground",
    help="Reconstruct grounded document layout from PDF text and OCR",
    add_completion=False,
)
console = Console()


def _process_file(pdf_path: Path, output_dir: Path, workers: int, ocr: bool) -> ExtractionResult:
    """Run one PDF and write its JSON, markdown and text outputs."""
    with Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(pdf_path.name, total=100)
        orchestrator = PageOrchestrator(
            page_source=PDFRenderer(),
            ocr_engine=TesseractOCR() if ocr else None,
            max_workers=workers,
            progress_callback=lambda pct: progress.update(task, completed=pct),
        )
        result = orchestrator.run(str(pdf_path))

    output_dir.mkdir(parents=True, exist_ok=True)
    stem = pdf_path.stem
    (output_dir / f"{stem}.json").write_text(result.model_dump_json(indent=2))
    (output_dir / f"{stem}.md").write_text(result.markdown)
    (output_dir / f"{stem}.txt").write_text(result.text)
    return result


def _print_summary(result: ExtractionResult) -> None:
    metrics = result.document.metrics
    console.print(
        f"[green]{result.document.page_count} pages[/green], "
        f"{metrics.total_blocks} blocks, {len(result.chunks)} chunks, "
        f"coverage {metrics.overall_coverage:.1f}%"
    )
    if metrics.failed_pages:
        console.print(f"[red]Failed pages:[/red] {metrics.failed_pages}")
    if metrics.degraded_pages:
        console.print(f"[yellow]Degraded pages (native only):[/yellow] {metrics.degraded_pages}")


@app.command()
def process(
    pdf_path: str = typer.Argument(..., help="Path to PDF file to process"),
    output_dir: str = typer.Option("./output", help="Output directory"),
    workers: int = typer.Option(settings.max_workers, help="Pages processed in parallel"),
    ocr: bool = typer.Option(settings.enable_ocr, help="Enable the OCR channel"),
    log_level: str = typer.Option(settings.log_level, help="Logging level"),
) -> None:
    """Process a single PDF document."""
    setup_logging(log_level)
    console.print(f"[bold blue]Processing:[/bold blue] {pdf_path}")
    console.print(f"[dim]Output directory: {output_dir}[/dim]")

    try:
        result = _process_file(Path(pdf_path), Path(output_dir), workers, ocr)
    except DocumentLoadError as e:
        console.print(f"[red]Cannot open document:[/red] {e}")
        raise typer.Exit(code=1)

    _print_summary(result)


@app.command()
def batch(
    directory: str = typer.Argument(..., help="Directory containing PDFs"),
    output_dir: str = typer.Option("./output", help="Output directory"),
    workers: int = typer.Option(settings.max_workers, help="Pages processed in parallel"),
    ocr: bool = typer.Option(settings.enable_ocr, help="Enable the OCR channel"),
    log_level: str = typer.Option(settings.log_level, help="Logging level"),
) -> None:
    """Batch process all PDFs in a directory."""
    setup_logging(log_level)
    pdf_paths = sorted(Path(directory).glob("*.pdf"))
    console.print(f"[bold blue]Batch processing:[/bold blue] {len(pdf_paths)} PDFs in {directory}")

    failures = 0
    for pdf_path in pdf_paths:
        console.print(f"[bold]{pdf_path.name}[/bold]")
        try:
            result = _process_file(pdf_path, Path(output_dir), workers, ocr)
        except DocumentLoadError as e:
            failures += 1
            console.print(f"[red]Skipped:[/red] {e}")
            continue
        _print_summary(result)

    if failures:
        raise typer.Exit(code=1)


@app.command()
def search(
    result_path: str = typer.Argument(..., help="JSON result written by 'process'"),
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(10, help="Maximum results to return"),
) -> None:
    """Search the chunks of a processed document."""
    path = Path(result_path)
    if not path.exists():
        console.print(f"[red]Result file not found:[/red] {path}")
        raise typer.Exit(code=1)

    result = ExtractionResult.model_validate_json(path.read_text())
    groups = search_chunks(result.chunks, query)
    hits = [chunk for chunks in groups.values() for chunk in chunks]

    console.print(
        f"[bold blue]Searching:[/bold blue] {query} "
        f"[dim]({len(hits)} matches on {len(groups)} pages)[/dim]"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Page", justify="right")
    table.add_column("Chunk")
    table.add_column("Type")
    table.add_column("Text")
    for chunk in hits[:limit]:
        table.add_row(
            str(chunk.page_number),
            chunk.id,
            chunk.chunk_type.value,
            chunk.text if len(chunk.text) <= 80 else chunk.text[:77] + "...",
        )
    console.print(table)


if __name__ == "__main__":
    app()

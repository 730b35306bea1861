"""Friendly CLI interface for LINKIT Weekly."""

import time
from contextlib import contextmanager
from datetime import datetime

from rich import box
from rich.align import Align
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from .archive import NewsletterRecord
from .ingest.source_store import FeedSource
from .ingest.sources import FetchReport
from .processing.scoring import relevance_label
from .processing.selection import ScoredArticle

SCORE_STYLES = {
    "high": "bold bright_green",
    "medium": "bright_green",
    "low": "bright_yellow",
}


class FriendlyUI:
    """Terminal output for the curation workflow."""

    def __init__(self, verbose: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.start_time = time.time()
        self.console = console or Console()

    def show_banner(self):
        """Display the LINKIT Weekly banner."""
        subtitle = Text()
        subtitle.append("📬 LINKIT WEEKLY", style="bold bright_cyan")
        subtitle.append("\n")
        subtitle.append("KI, Data Science und Industrie 4.0", style="bright_magenta")

        self.console.print()
        self.console.print(Align.center(Panel(
            Align.center(subtitle),
            border_style="bright_blue",
            box=box.DOUBLE,
            padding=(1, 4)
        )))
        self.console.print()

    def info(self, message: str):
        styled_message = Text()
        styled_message.append("▸ ", style="bold bright_cyan")
        styled_message.append(message, style="bright_cyan")
        self.console.print(styled_message)

    def success(self, message: str):
        styled_message = Text()
        styled_message.append("▸ ", style="bold bright_green")
        styled_message.append(message, style="bright_green")
        styled_message.append(" ✓", style="bold bright_yellow")
        self.console.print(styled_message)

    def warning(self, message: str):
        styled_message = Text()
        styled_message.append("▸ ", style="bold bright_yellow")
        styled_message.append("WARNING", style="bold black on bright_yellow")
        styled_message.append(" ", style="")
        styled_message.append(message, style="bright_yellow")
        self.console.print(styled_message)

    def error(self, message: str):
        styled_message = Text()
        styled_message.append("▸ ", style="bold bright_red")
        styled_message.append("ERROR", style="bold bright_white on bright_red")
        styled_message.append(" ", style="")
        styled_message.append(message, style="bright_red")
        self.console.print(styled_message)

    def verbose_log(self, message: str):
        if self.verbose:
            self.console.print(Text(f"   ◦ {message}", style="dim bright_blue"))

    @contextmanager
    def stage(self, name: str, emoji: str = "⚡"):
        """Context manager for a pipeline stage with a spinner."""
        stage_start = time.time()
        with Progress(
            SpinnerColumn("dots12", style="bold bright_green"),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(style="bright_cyan", complete_style="bright_green"),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"[bold bright_green]{emoji} {name}...", total=None)
            try:
                yield progress, task
            except Exception as e:
                progress.stop()
                self.error(f"{name} failed: {e}")
                raise

        duration = time.time() - stage_start
        self.console.print(f"   [dim]{emoji} {name} completed in {duration:.1f}s[/dim]")

    def complete_progress(self, progress, task, result_message: str):
        """Complete progress bar with result."""
        if progress and task is not None:
            progress.update(task, completed=100, total=100)
        self.console.print(f"   → [bold]{result_message}[/bold]")

    def show_source_results(self, report: FetchReport):
        """Show results from source fetching."""
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
        table.add_column("Source", style="dim")
        table.add_column("Articles", justify="right")
        table.add_column("Status", justify="center")

        for name, count in report.source_counts.items():
            if name in report.errors:
                status = "✗"
            else:
                status = "✓" if count > 0 else "⚠️"
            table.add_row(name, str(count), status)

        self.console.print(table)
        self.console.print(f"\n   → [bold]Found {len(report.articles)} articles total[/bold]")

    def show_article_table(self, ranked: list[ScoredArticle], language: str = "de", selected: set[str] | None = None):
        """Ranked article listing with score and relevance label."""
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Score", justify="right")
        table.add_column("Relevance")
        table.add_column("Title", overflow="fold")
        table.add_column("Source", style="dim")
        table.add_column("Date", style="dim")

        date_format = "%d.%m.%Y" if language == "de" else "%m/%d/%Y"
        for i, item in enumerate(ranked, 1):
            label = relevance_label(item.score, language)
            style = "high" if item.score >= 8 else "medium" if item.score >= 5 else "low"
            marker = "★ " if selected and item.article.article_id in selected else ""
            table.add_row(
                str(i),
                str(item.score),
                Text(label, style=SCORE_STYLES[style]),
                f"{marker}{item.article.title}",
                item.article.source_name,
                item.article.pub_date.strftime(date_format),
            )

        self.console.print(table)

    def show_sources(self, sources: list[FeedSource]):
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
        table.add_column("Name")
        table.add_column("URL", style="dim", overflow="fold")
        table.add_column("Enabled", justify="center")
        for source in sources:
            table.add_row(source.name, source.url, "✓" if source.enabled else "✗")
        self.console.print(table)

    def show_archive(self, records: list[NewsletterRecord]):
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Week")
        table.add_column("Title")
        table.add_column("Articles", justify="right")
        table.add_column("Language", justify="center")
        table.add_column("Created", style="dim")
        for record in records:
            table.add_row(
                str(record.id),
                f"{record.year}/KW{record.week_number}",
                record.title,
                str(record.article_count),
                record.language,
                record.created_at.strftime("%Y-%m-%d %H:%M"),
            )
        self.console.print(table)

    def show_markdown(self, content: str, title: str | None = None):
        self.console.print(Panel(Markdown(content), title=title, border_style="bright_blue", box=box.ROUNDED))

    def show_final_summary(self, week_label: str, total_articles: int, selected_articles: int,
                           archive_id: int | None = None, output_file: str | None = None):
        """Show final summary of a generation run."""
        duration = time.time() - self.start_time

        summary_table = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
        summary_table.add_column("Metric", style="dim blue")
        summary_table.add_column("Value", style="bold bright_blue")

        summary_table.add_row("📅 Week", week_label)
        summary_table.add_row("📰 Articles found", str(total_articles))
        summary_table.add_row("⭐ Final selection", str(selected_articles))
        if archive_id is not None:
            summary_table.add_row("🗄️  Archive id", str(archive_id))
        if output_file:
            summary_table.add_row("💾 Output file", output_file)
        summary_table.add_row("⏱️  Total time", f"{duration:.1f}s")
        summary_table.add_row("🕒 Finished", datetime.now().strftime("%H:%M:%S"))

        self.console.print()
        self.console.print(Panel(
            summary_table,
            title="🎉 [bold cyan]LINKIT Weekly ready![/bold cyan] 🎉",
            title_align="center",
            box=box.ROUNDED,
            border_style="bright_blue"
        ))


# Global UI instance
_ui_instance: FriendlyUI | None = None


def get_ui(verbose: bool = False) -> FriendlyUI:
    """Get or create global UI instance."""
    global _ui_instance
    if _ui_instance is None:
        _ui_instance = FriendlyUI(verbose=verbose)
    return _ui_instance


def init_ui(verbose: bool = False) -> FriendlyUI:
    """Initialize UI for the session."""
    global _ui_instance
    _ui_instance = FriendlyUI(verbose=verbose)
    return _ui_instance

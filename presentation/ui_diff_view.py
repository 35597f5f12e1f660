"""
Presentation Layer: UI Diff View
Affichage des décisions avec Rich
"""
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from domain.entities import ComparisonReport, Verdict
from modules.reporter import reporter


DISPLAY_LIMIT = 200


class UIDiffView:
    """
    Gestionnaire d'affichage des comparaisons avec Rich.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_report(self, report: ComparisonReport) -> None:
        """
        Affiche les décisions d'une comparaison.

        Args:
            report: Le rapport à afficher
        """
        table = reporter.build_table(report, limit=DISPLAY_LIMIT)
        title = Text(f"Diff: {report.source_path} -> {report.target_path}", style="bold")

        self.console.print(Panel(table, title=title, border_style="cyan"))

        if len(report.decisions) > DISPLAY_LIMIT:
            self.console.print(f"[dim]... et {len(report.decisions) - DISPLAY_LIMIT} autres lignes[/dim]")

        self.console.print(Text(report.get_summary(), style="cyan"))
        for conflict in report.conflicts:
            self.console.print(Text(f"conflict: {conflict}", style="yellow"))

    def display_batch_summary(self, reports: List[ComparisonReport], failures: int = 0) -> None:
        """
        Affiche un résumé de plusieurs comparaisons.

        Args:
            reports: Liste de ComparisonReport
            failures: Nombre de paires en échec
        """
        if not reports and not failures:
            self.console.print("[green]No file pairs to compare[/green]")
            return

        # Tableau de résumé
        table = Table(show_header=True, header_style="bold")
        table.add_column("Fichier", style="cyan")
        table.add_column("Keep", style="green")
        table.add_column("Remove", style="red")
        table.add_column("Filtered", style="yellow")
        table.add_column("Conflits", style="magenta")

        totals = {verdict: 0 for verdict in Verdict}

        for report in reports:
            counts = {verdict: report.count(verdict) for verdict in Verdict}
            table.add_row(
                Text(report.target_path if report.source_path.startswith("<") else report.source_path),
                str(counts[Verdict.KEEP]),
                str(counts[Verdict.REMOVE]),
                str(counts[Verdict.FILTERED]),
                str(len(report.conflicts)),
            )
            for verdict, count in counts.items():
                totals[verdict] += count

        summary_text = (
            f"[bold]Total:[/bold] keep={totals[Verdict.KEEP]} "
            f"remove={totals[Verdict.REMOVE]} filtered={totals[Verdict.FILTERED]}"
        )
        self.console.print(Panel(
            table,
            title="[bold]Summary of Decisions[/bold]",
            border_style="green"
        ))
        self.console.print(f"[green]{summary_text}[/green]")
        if failures:
            self.console.print(f"[red]{failures} comparison(s) failed[/red]")

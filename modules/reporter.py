"""
Reporter Module
Rendu des décisions résolues (json, text, diff) et écriture des rapports
"""
import io
import json
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from core.file_manager import file_manager, FileManagerError
from core.settings import OUTPUT_FORMATS
from domain.entities import ComparisonReport, EditKind, Variant, Verdict


class ReporterError(Exception):
    """Exception for reporter errors"""
    pass


VERDICT_STYLES = {
    Verdict.KEEP: "green",
    Verdict.REMOVE: "red",
    Verdict.FILTERED: "yellow",
}

_OP_PREFIX = {
    EditKind.EQUAL: " ",
    EditKind.INSERT: "+",
    EditKind.DELETE: "-",
    EditKind.SUBSTITUTE: "~",
    EditKind.MOVE: ">",
}


class Reporter:
    """
    Renders comparison reports in the supported formats.
    """

    def __init__(self, width: int = 120):
        self.width = width

    def render(self, report: ComparisonReport, output_format: str = "text") -> str:
        """
        Renders a single report.

        Args:
            report: The resolved comparison
            output_format: One of json, text, diff

        Returns:
            The rendered report
        """
        if output_format == "json":
            return json.dumps(report.to_dict(), indent=2) + "\n"
        if output_format == "text":
            return self._render_text(report)
        if output_format == "diff":
            return self.render_unified(report)
        raise ReporterError(f"Unknown format '{output_format}', expected one of {OUTPUT_FORMATS}")

    def render_many(self, reports: List[ComparisonReport], errors: Optional[List[Dict[str, Any]]] = None,
                    output_format: str = "text") -> str:
        """Renders a batch of reports (directory comparison)"""
        if output_format == "json":
            payload = {
                "comparisons": [r.to_dict() for r in reports],
                "errors": errors or [],
            }
            return json.dumps(payload, indent=2) + "\n"

        chunks = [self.render(report, output_format) for report in reports]
        for error in errors or []:
            chunks.append(f"ERROR {error['source']} -> {error['target']}: {error['error']}\n")
        return "".join(chunks)

    def build_table(self, report: ComparisonReport, limit: Optional[int] = None) -> Table:
        """Rich table of decisions, one row per line"""
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Variant", style="cyan", width=7)
        table.add_column("Line", style="dim", justify="right", width=5)
        table.add_column("Verdict", width=9)
        table.add_column("Provenance", overflow="fold")
        table.add_column("Content", style="white", overflow="ellipsis", no_wrap=True)

        decisions = report.decisions if limit is None else report.decisions[:limit]
        for decision in decisions:
            style = VERDICT_STYLES[decision.verdict]
            table.add_row(
                decision.variant.value,
                str(decision.line_index),
                f"[{style}]{decision.verdict.value}[/{style}]",
                Text(decision.provenance),
                Text(decision.text.strip()[:80]),
            )
        return table

    def render_unified(self, report: ComparisonReport) -> str:
        """
        Unified-style listing of the edit script with the verdict of each
        side: `- text  [source:remove]`.
        """
        verdicts = {(d.variant, d.line_index): d.verdict.value for d in report.decisions}
        lines = [f"--- {report.source_path}", f"+++ {report.target_path}"]

        for op in report.ops:
            prefix = _OP_PREFIX[op.kind]
            if op.kind == EditKind.EQUAL:
                lines.append(f"{prefix} {op.target_line.raw_text}")
                continue
            if op.source_line is not None:
                verdict = verdicts.get((Variant.SOURCE, op.source_index))
                lines.append(f"{prefix}-{op.source_line.raw_text}  [source:{verdict}]")
            if op.target_line is not None:
                verdict = verdicts.get((Variant.TARGET, op.target_index))
                lines.append(f"{prefix}+{op.target_line.raw_text}  [target:{verdict}]")

        for conflict in report.conflicts:
            lines.append(f"! {conflict}")
        return "\n".join(lines) + "\n"

    def write(self, content: str, destination: str) -> str:
        """
        Writes a rendered report to disk.

        Returns:
            Path of created file
        """
        try:
            file_manager.write_file(destination, content)
        except FileManagerError as e:
            raise ReporterError(f"Failed to write report {destination}: {str(e)}") from e
        return destination

    def _render_text(self, report: ComparisonReport) -> str:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, color_system=None, force_terminal=False)
        console.print(report.get_summary(), markup=False)
        console.print(self.build_table(report))
        if report.conflicts:
            console.print("Conflicts:")
            for conflict in report.conflicts:
                console.print(f"  {conflict}", markup=False)
        return buffer.getvalue()


# Instance globale du reporter
reporter = Reporter()

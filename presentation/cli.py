"""
Presentation Layer: CLI
Interface en ligne de commande principale
"""
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

import core.settings as settings_module
from core.errors import ComparisonTimeoutError, MalformedInputError
from core.file_manager import FileManagerError
from core.settings import OUTPUT_FORMATS, SettingsError
from domain.services.comparison_service import ComparisonService
from modules.reporter import reporter, ReporterError
from presentation.logger import Logger
from presentation.ui_diff_view import UIDiffView


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MALFORMED = 2
EXIT_TIMEOUT = 3


app = typer.Typer(help="VariantFilter - Comparaison et filtrage de variantes de code source")
console = Console()


def init_app(config: Optional[Path] = None, verbose: bool = False):
    """Initialise l'application avec les ressources nécessaires"""
    try:
        active_settings = settings_module.get_settings(config)
    except SettingsError as e:
        console.print(f"[red][ERROR] Invalid configuration:[/red] {e}", markup=True)
        raise typer.Exit(code=EXIT_FAILURE)

    logger = Logger(settings=active_settings)
    if verbose:
        logger.set_level("DEBUG")
    return active_settings, logger


def _resolve_format(output_format: Optional[str], default: str) -> str:
    selected = (output_format or default).lower()
    if selected not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"expected one of {', '.join(OUTPUT_FORMATS)}", param_hint="--format")
    return selected


@app.command()
def compare(
    source: str = typer.Argument(..., help="Fichier de la variante source"),
    target: str = typer.Argument(..., help="Fichier de la variante cible"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="json, text ou diff"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Budget de temps en millisecondes"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Fichier de sortie du rapport"),
    config: Optional[Path] = typer.Option(None, "--config", help="Fichier de configuration YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Mode verbeux"),
):
    """
    Compare deux variantes et affiche la décision pour chaque ligne
    """
    active_settings, logger = init_app(config, verbose)
    selected_format = _resolve_format(output_format, active_settings.default_format)
    timeout_ms = timeout if timeout is not None else active_settings.timeout_ms

    logger.log_comparison_start(source, target)
    service = ComparisonService(active_settings)

    try:
        report = service.compare_files(source, target, timeout_ms=timeout_ms)
    except MalformedInputError as e:
        logger.log_error(f"Malformed input: {e}")
        raise typer.Exit(code=EXIT_MALFORMED)
    except ComparisonTimeoutError as e:
        logger.log_error(str(e))
        raise typer.Exit(code=EXIT_TIMEOUT)
    except FileManagerError as e:
        logger.log_error(f"Error reading files: {e}")
        raise typer.Exit(code=EXIT_FAILURE)

    logger.log_report(report)

    if output is not None:
        try:
            reporter.write(reporter.render(report, selected_format), str(output))
        except ReporterError as e:
            logger.log_error(str(e))
            raise typer.Exit(code=EXIT_FAILURE)
        logger.log_info(f"Report written to {output}")
    elif selected_format == "text":
        UIDiffView(console).display_report(report)
    else:
        typer.echo(reporter.render(report, selected_format), nl=False)


@app.command("compare-dirs")
def compare_dirs(
    source_dir: str = typer.Argument(..., help="Dossier de la variante source"),
    target_dir: str = typer.Argument(..., help="Dossier de la variante cible"),
    pattern: str = typer.Option("*", "--pattern", "-p", help="Filtre des fichiers (ex: *.c)"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Comparaisons en parallèle"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="json, text ou diff"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Budget par paire en millisecondes"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Fichier de sortie du rapport"),
    config: Optional[Path] = typer.Option(None, "--config", help="Fichier de configuration YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Mode verbeux"),
):
    """
    Compare tous les fichiers de même chemin relatif entre deux dossiers
    """
    active_settings, logger = init_app(config, verbose)
    selected_format = _resolve_format(output_format, active_settings.default_format)
    timeout_ms = timeout if timeout is not None else active_settings.timeout_ms

    logger.log_header(f"Comparaison {source_dir} -> {target_dir}")
    service = ComparisonService(active_settings)
    service.on_comparison_completed = lambda outcome: logger.log_report(outcome.report)
    service.on_comparison_failed = lambda outcome: logger.log_error(
        f"{outcome.source_path} -> {outcome.target_path}: {outcome.error}"
    )

    try:
        outcomes = service.compare_directories(
            source_dir, target_dir, pattern=pattern, workers=workers, timeout_ms=timeout_ms
        )
    except FileManagerError as e:
        logger.log_error(str(e))
        raise typer.Exit(code=EXIT_FAILURE)

    reports = [o.report for o in outcomes if o.ok]
    failed = [o for o in outcomes if not o.ok]
    errors = [
        {"source": o.source_path, "target": o.target_path, "error": str(o.error)}
        for o in failed
    ]

    if output is not None:
        try:
            reporter.write(reporter.render_many(reports, errors, selected_format), str(output))
        except ReporterError as e:
            logger.log_error(str(e))
            raise typer.Exit(code=EXIT_FAILURE)
        logger.log_info(f"Report written to {output}")
    elif selected_format == "text":
        UIDiffView(console).display_batch_summary(reports, failures=len(failed))
    else:
        typer.echo(reporter.render_many(reports, errors, selected_format), nl=False)

    if any(isinstance(o.error, MalformedInputError) for o in failed):
        raise typer.Exit(code=EXIT_MALFORMED)
    if any(isinstance(o.error, ComparisonTimeoutError) for o in failed):
        raise typer.Exit(code=EXIT_TIMEOUT)
    if failed:
        raise typer.Exit(code=EXIT_FAILURE)


@app.command()
def version():
    """
    Affiche la version de VariantFilter
    """
    active_settings = settings_module.get_settings()
    version_info = f"""
VariantFilter v{active_settings.metadata.get('version', '1.0.0')}

Source variant diff and directive-driven line filtering
    """
    console.print(Panel(version_info.strip(), border_style="cyan"))


def main():
    """Point d'entrée principal"""
    app()


if __name__ == "__main__":
    main()

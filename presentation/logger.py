"""
Presentation Layer: Logger
Gestion des journaux avec Loguru et Rich
"""
import logging
import os
from datetime import datetime
from typing import Optional

from loguru import logger as loguru_logger
from rich.console import Console
from rich.logging import RichHandler

from core.settings import Settings, get_settings


LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class _InterceptHandler(logging.Handler):
    """Redirige les logs `logging` des couches data/domain vers Loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        loguru_logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


class Logger:
    """
    Gestionnaire de logs avec support pour Rich et Loguru.
    Peut générer un journal Markdown de session.
    """

    def __init__(
        self,
        session_name: Optional[str] = None,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ):
        self.settings = settings or get_settings()
        self.session_name = session_name or f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        self.log_file = self.settings.logs_dir / f"{self.session_name}.md"
        self.console = console or Console(stderr=True)
        self.log_level = self._normalize(os.getenv("VARIANTFILTER_LOG_LEVEL", self.settings.log_level))
        self.rotation_bytes = 2 * 1024 * 1024  # 2 Mo
        self.retention_count = 5

        self._setup_loguru()

    @staticmethod
    def _normalize(level: str) -> str:
        normalized = str(level or "INFO").upper()
        return normalized if normalized in LEVELS else "INFO"

    def _setup_loguru(self) -> None:
        """Configure Loguru avec Rich handler"""
        loguru_logger.remove()  # Enlève le handler par défaut

        # Handler Rich pour la console
        loguru_logger.add(
            RichHandler(console=self.console, rich_tracebacks=True, show_path=False),
            format="{message}",
            level=self.log_level,
        )

        # Handler fichier Markdown
        if self.settings.session_log:
            self.settings.ensure_directories()
            loguru_logger.add(
                str(self.log_file),
                format="{message}",
                level="DEBUG",
                rotation=self.rotation_bytes,
                retention=self.retention_count,
            )

        logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    def set_level(self, level: str) -> None:
        """Met à jour le niveau minimum de log affiché dans la console."""

        if not level:
            return

        self.log_level = self._normalize(level)
        self._setup_loguru()

    def log_header(self, title: str) -> None:
        """
        Log un en-tête.

        Args:
            title: Le titre de l'en-tête
        """
        loguru_logger.debug(f"# {title}\n")
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]")

    def log_comparison_start(self, source_path: Optional[str], target_path: Optional[str]) -> None:
        """
        Log le début d'une comparaison.

        Args:
            source_path: La variante source
            target_path: La variante cible
        """
        loguru_logger.info(
            f"\n## Comparaison: {source_path} -> {target_path}\n\n"
            f"**Heure:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
        )

    def log_report(self, report) -> None:
        """
        Log le résumé d'un rapport.

        Args:
            report: Un objet ComparisonReport
        """
        loguru_logger.info(f"### Résultat\n\n{report.get_summary()}\n")
        for conflict in report.conflicts:
            loguru_logger.warning(f"Conflit: {conflict}")

    def log_info(self, message: str) -> None:
        loguru_logger.info(message)

    def log_error(self, message: str) -> None:
        loguru_logger.error(f"Erreur: {message}")

    def get_log_file_path(self) -> Optional[str]:
        """Retourne le chemin du fichier de log, s'il est activé"""
        return str(self.log_file) if self.settings.session_log else None

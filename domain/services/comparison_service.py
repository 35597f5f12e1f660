"""
Domain Service: ComparisonService
Orchestration du pipeline tokenizer -> diff -> classification -> résolution
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from core.errors import ComparisonTimeoutError
from core.file_manager import file_manager
from core.settings import Settings, get_settings
from data.diff_engine import DiffEngine
from data.marker_classifier import MarkerClassifier
from data.tokenizer import LineNormalizer
from domain.entities import ComparisonReport, FileSnapshot, Variant
from domain.services.policy_resolver import PolicyResolver


logger = logging.getLogger(__name__)


@dataclass
class ComparisonOutcome:
    """Résultat d'une comparaison d'une paire dans un lot"""
    source_path: Optional[str]
    target_path: Optional[str]
    report: Optional[ComparisonReport] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ComparisonService:
    """
    Service responsable d'une comparaison complète entre deux variantes.
    Chaque comparaison construit ses propres composants : aucun état
    mutable n'est partagé entre comparaisons concurrentes.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.on_comparison_completed: Optional[Callable[[ComparisonOutcome], None]] = None
        self.on_comparison_failed: Optional[Callable[[ComparisonOutcome], None]] = None

    def compare_files(
        self,
        source_path: Optional[str],
        target_path: Optional[str],
        *,
        timeout_ms: Optional[int] = None,
    ) -> ComparisonReport:
        """
        Compare deux fichiers. Un chemin None est traité comme un fichier vide
        (fichier présent d'un seul côté).

        Raises:
            FileManagerError: Si un fichier est illisible
            MalformedInputError: Si une entrée est mal formée
            ComparisonTimeoutError: Si le budget de temps est dépassé
        """
        deadline = self._deadline(timeout_ms)
        normalizer = LineNormalizer(self.settings)

        source = (
            normalizer.read(source_path, Variant.SOURCE)
            if source_path else FileSnapshot.empty(Variant.SOURCE)
        )
        target = (
            normalizer.read(target_path, Variant.TARGET)
            if target_path else FileSnapshot.empty(Variant.TARGET)
        )
        return self._run(source, target, deadline, timeout_ms)

    def compare_texts(
        self,
        source_text: str,
        target_text: str,
        *,
        source_path: str = "<source>",
        target_path: str = "<target>",
        timeout_ms: Optional[int] = None,
    ) -> ComparisonReport:
        """Compare deux contenus déjà chargés en mémoire"""
        deadline = self._deadline(timeout_ms)
        normalizer = LineNormalizer(self.settings)
        source = normalizer.normalize(source_text, Variant.SOURCE, path=source_path)
        target = normalizer.normalize(target_text, Variant.TARGET, path=target_path)
        return self._run(source, target, deadline, timeout_ms)

    def compare_snapshots(
        self,
        source: FileSnapshot,
        target: FileSnapshot,
        *,
        timeout_ms: Optional[int] = None,
    ) -> ComparisonReport:
        """Compare deux snapshots existants"""
        return self._run(source, target, self._deadline(timeout_ms), timeout_ms)

    def compare_many(
        self,
        pairs: Iterable[Tuple[Optional[str], Optional[str]]],
        *,
        workers: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> List[ComparisonOutcome]:
        """
        Compare plusieurs paires indépendantes en parallèle.

        Args:
            pairs: Paires (chemin source, chemin cible)
            workers: Nombre de threads (Settings.workers par défaut)
            timeout_ms: Budget par comparaison

        Returns:
            Un ComparisonOutcome par paire, dans l'ordre d'entrée
        """
        pairs = list(pairs)
        max_workers = workers or self.settings.workers

        def run_pair(pair: Tuple[Optional[str], Optional[str]]) -> ComparisonOutcome:
            source_path, target_path = pair
            outcome = ComparisonOutcome(source_path, target_path)
            try:
                outcome.report = self.compare_files(source_path, target_path, timeout_ms=timeout_ms)
            except Exception as e:
                outcome.error = e
                logger.error("Comparison %s -> %s failed: %s", source_path, target_path, e)
            return outcome

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(run_pair, pairs))

        for outcome in outcomes:
            callback = self.on_comparison_completed if outcome.ok else self.on_comparison_failed
            if callback:
                callback(outcome)
        return outcomes

    def compare_directories(
        self,
        source_dir: str,
        target_dir: str,
        *,
        pattern: str = "*",
        workers: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> List[ComparisonOutcome]:
        """
        Compare les fichiers de même chemin relatif entre deux dossiers de
        variantes. Un fichier absent d'un côté est comparé à un fichier vide.
        """
        source_files = set(file_manager.list_files(source_dir, pattern))
        target_files = set(file_manager.list_files(target_dir, pattern))

        pairs = []
        for relative in sorted(source_files | target_files):
            pairs.append((
                str(Path(source_dir) / relative) if relative in source_files else None,
                str(Path(target_dir) / relative) if relative in target_files else None,
            ))
        logger.info("Comparing %d file pair(s) from %s and %s", len(pairs), source_dir, target_dir)
        return self.compare_many(pairs, workers=workers, timeout_ms=timeout_ms)

    def _run(
        self,
        source: FileSnapshot,
        target: FileSnapshot,
        deadline: Optional[float],
        timeout_ms: Optional[int],
    ) -> ComparisonReport:
        started = time.monotonic()
        engine = DiffEngine()
        classifier = MarkerClassifier(self.settings)
        resolver = PolicyResolver(self.settings)

        try:
            ops = engine.diff(source, target, deadline=deadline)
            self._check(deadline)

            directives = classifier.classify(source)
            conflicts = classifier.get_last_conflicts()
            directives += classifier.classify(target)
            conflicts += classifier.get_last_conflicts()
            self._check(deadline)

            hunks = engine.group_hunks(ops)
            for hunk in hunks:
                hunk.attach_directives(directives)

            decisions = resolver.resolve(hunks)
            conflicts += resolver.get_last_conflicts()
            self._check(deadline)
        except ComparisonTimeoutError:
            logger.warning("Comparison %s -> %s timed out", source.name, target.name)
            raise ComparisonTimeoutError(timeout_ms) from None

        report = ComparisonReport(
            source_path=source.name,
            target_path=target.name,
            decisions=decisions,
            ops=ops,
            directives=directives,
            conflicts=conflicts,
            elapsed_ms=(time.monotonic() - started) * 1000,
        )
        logger.info(report.get_summary())
        return report

    @staticmethod
    def _deadline(timeout_ms: Optional[int]) -> Optional[float]:
        if timeout_ms is None:
            return None
        return time.monotonic() + timeout_ms / 1000.0

    @staticmethod
    def _check(deadline: Optional[float]) -> None:
        if deadline is not None and time.monotonic() >= deadline:
            raise ComparisonTimeoutError()

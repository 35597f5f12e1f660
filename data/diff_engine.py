"""
Data Layer: Diff Engine
Alignement LCS ligne à ligne entre la variante source et la variante cible
"""
import logging
import time
from typing import Dict, List, Optional, Tuple

from core.errors import ComparisonTimeoutError
from domain.entities import EditKind, EditOp, FileSnapshot, Hunk, LogicalLine, Variant


logger = logging.getLogger(__name__)


class DiffEngineError(Exception):
    """Exception pour les erreurs de diff engine"""
    pass


# Une zone entre deux ancres : lignes supprimées, lignes insérées
Gap = Tuple[List[LogicalLine], List[LogicalLine]]


class DiffEngine:
    """
    Moteur de calcul du script d'édition minimal.
    Temps et mémoire en O(n·m).
    """

    def diff(
        self,
        source: FileSnapshot,
        target: FileSnapshot,
        deadline: Optional[float] = None,
    ) -> List[EditOp]:
        """
        Calcule le script d'édition entre deux snapshots.

        Args:
            source: La variante source
            target: La variante cible
            deadline: Instant limite (time.monotonic) au-delà duquel on abandonne

        Returns:
            Les opérations ordonnées; chaque ligne des deux côtés apparaît
            dans exactement une opération

        Raises:
            DiffEngineError: Si les variantes sont inversées
            ComparisonTimeoutError: Si la deadline est dépassée
        """
        if source.variant != Variant.SOURCE or target.variant != Variant.TARGET:
            raise DiffEngineError("diff() expects a source snapshot then a target snapshot")

        source_keys = [line.key for line in source]
        target_keys = [line.key for line in target]
        table = self._lcs_table(source_keys, target_keys, deadline)

        # Chaque entrée est soit une ancre (EditOp EQUAL), soit une zone modifiée
        segments: List[object] = []
        deleted: List[LogicalLine] = []
        inserted: List[LogicalLine] = []
        i, j = 0, 0
        n, m = len(source_keys), len(target_keys)

        while i < n or j < m:
            if i < n and j < m and source_keys[i] == target_keys[j]:
                # Correspondance la plus précoce possible : ancrage stable
                if deleted or inserted:
                    segments.append((deleted, inserted))
                    deleted, inserted = [], []
                segments.append(EditOp(EditKind.EQUAL, source[i], target[j]))
                i += 1
                j += 1
            elif j >= m or (i < n and table[i + 1][j] >= table[i][j + 1]):
                deleted.append(source[i])
                i += 1
            else:
                inserted.append(target[j])
                j += 1
        if deleted or inserted:
            segments.append((deleted, inserted))

        moves = self._find_moves([s for s in segments if isinstance(s, tuple)])
        ops: List[EditOp] = []
        for segment in segments:
            if isinstance(segment, EditOp):
                ops.append(segment)
            else:
                ops.extend(self._gap_ops(segment, moves))

        logger.debug(
            "Diff %s -> %s: %d ops, %d anchors, %d moves",
            source.name, target.name, len(ops), table[0][0], len(moves),
        )
        return ops

    def _lcs_table(
        self,
        source_keys: List[str],
        target_keys: List[str],
        deadline: Optional[float],
    ) -> List[List[int]]:
        """Table des longueurs LCS des suffixes : table[i][j] = LCS(a[i:], b[j:])"""
        n, m = len(source_keys), len(target_keys)
        table = [[0] * (m + 1) for _ in range(n + 1)]

        for i in range(n - 1, -1, -1):
            if deadline is not None and time.monotonic() >= deadline:
                raise ComparisonTimeoutError()
            row, below = table[i], table[i + 1]
            key = source_keys[i]
            for j in range(m - 1, -1, -1):
                if key == target_keys[j]:
                    row[j] = below[j + 1] + 1
                else:
                    row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]
        return table

    @staticmethod
    def _find_moves(gaps: List[Gap]) -> Dict[int, LogicalLine]:
        """
        Associe les lignes de code identiques supprimées d'un côté et
        insérées de l'autre. Clé : index source, valeur : ligne cible.
        """
        pending: Dict[str, List[LogicalLine]] = {}
        for _, inserted in gaps:
            for line in inserted:
                if line.is_code:
                    pending.setdefault(line.raw_text, []).append(line)

        moves: Dict[int, LogicalLine] = {}
        for deleted, _ in gaps:
            for line in deleted:
                candidates = pending.get(line.raw_text) if line.is_code else None
                if candidates:
                    moves[line.index] = candidates.pop(0)
        return moves

    @staticmethod
    def _gap_ops(gap: Gap, moves: Dict[int, LogicalLine]) -> List[EditOp]:
        """Substitutions positionnelles, puis suppressions et insertions restantes"""
        moved_targets = {line.index for line in moves.values()}
        deleted, inserted = gap
        remaining_deleted = [line for line in deleted if line.index not in moves]
        remaining_inserted = [line for line in inserted if line.index not in moved_targets]

        ops: List[EditOp] = []
        paired = min(len(remaining_deleted), len(remaining_inserted))
        for k in range(paired):
            ops.append(EditOp(EditKind.SUBSTITUTE, remaining_deleted[k], remaining_inserted[k]))

        for line in deleted:
            if line.index in moves:
                ops.append(EditOp(EditKind.MOVE, line, moves[line.index]))
        for line in remaining_deleted[paired:]:
            ops.append(EditOp(EditKind.DELETE, source_line=line))
        for line in remaining_inserted[paired:]:
            ops.append(EditOp(EditKind.INSERT, target_line=line))
        return ops

    @staticmethod
    def group_hunks(ops: List[EditOp]) -> List[Hunk]:
        """
        Regroupe le script en hunks contigus, alternant zones inchangées
        et zones modifiées.
        """
        hunks: List[Hunk] = []
        current: List[EditOp] = []
        for op in ops:
            if current and current[-1].is_change != op.is_change:
                hunks.append(Hunk(ops=current))
                current = []
            current.append(op)
        if current:
            hunks.append(Hunk(ops=current))
        return hunks


# Instance globale du moteur de diff
diff_engine = DiffEngine()

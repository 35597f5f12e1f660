"""
Domain Service: PolicyResolver
Applique la politique par défaut et la précédence des directives
"""
import bisect
import difflib
import logging
from typing import Dict, Iterator, List, Optional, Tuple

from core.errors import ConflictingDirectiveWarning
from core.settings import Settings, get_settings
from data.marker_classifier import directive_map
from domain.entities import (
    Decision,
    Directive,
    DirectiveKind,
    EditKind,
    EditOp,
    Hunk,
    LogicalLine,
    Variant,
    Verdict,
)


logger = logging.getLogger(__name__)

# (variante, ligne, verdict proposé, provenance)
Proposal = Tuple[Variant, LogicalLine, Verdict, str]


class PolicyResolver:
    """
    Transforme des hunks classés en une décision par ligne.

    Ordre d'application pour une ligne modifiée :
    1. MustStay gagne toujours, y compris contre une suppression ou du
       bruit. Une portée ne contient que des lignes de code ou la directive
       elle-même : une ligne vide n'est donc jamais protégée
    2. Le bruit est Filtered :
       - ligne vide ou commentaire nu
       - substitution qui ne diffère que par les espaces
       - commentaire répété à côté d'une copie inchangée
    3. MustFilter : Filtered
    4. MayRemove autorise la suppression proposée, sans rien imposer
    5. Sinon le verdict par défaut de l'opération (et le filtre de
       distance d'ancre pour les insertions, s'il est activé)
    """

    def __init__(self, settings: Optional[Settings] = None):
        active = settings or get_settings()
        self.rename_similarity = active.rename_similarity
        self.anchor_distance = (
            int(active.anchor_distance) if active.anchor_distance is not None else None
        )
        self._last_conflicts: List[ConflictingDirectiveWarning] = []

    def resolve(self, hunks: List[Hunk]) -> List[Decision]:
        """
        Produit les décisions, une par (variante, ligne) touchée.

        Args:
            hunks: Les hunks avec leurs directives rattachées

        Returns:
            Les décisions, lignes source puis lignes cible, par index croissant
        """
        anchors = sorted(
            op.target_index for hunk in hunks for op in hunk.ops if op.kind == EditKind.EQUAL
        )
        layout = _layout(hunks)
        decisions: Dict[Tuple[Variant, int], Decision] = {}
        conflicts: List[ConflictingDirectiveWarning] = []

        for hunk in hunks:
            scoped = directive_map(hunk.directives)
            for op in hunk.ops:
                for variant, line, verdict, provenance in self._proposals(op):
                    directives = scoped.get((variant.value, line.index), [])
                    decision = self._decide(
                        op, variant, line, verdict, provenance, directives, anchors, layout, conflicts
                    )
                    decisions[(variant, line.index)] = decision

        self._last_conflicts = conflicts
        ordered = sorted(
            decisions.values(),
            key=lambda d: (d.variant != Variant.SOURCE, d.line_index),
        )
        logger.debug("Resolved %d decisions, %d conflicts", len(ordered), len(conflicts))
        return ordered

    def get_last_conflicts(self) -> List[ConflictingDirectiveWarning]:
        """Conflits relevés lors du dernier appel à resolve()"""
        return list(self._last_conflicts)

    def _proposals(self, op: EditOp) -> Iterator[Proposal]:
        """Verdicts par défaut, sans directive"""
        if op.kind == EditKind.EQUAL:
            yield Variant.SOURCE, op.source_line, Verdict.KEEP, "anchor"
            yield Variant.TARGET, op.target_line, Verdict.KEEP, "anchor"
        elif op.kind == EditKind.DELETE:
            yield Variant.SOURCE, op.source_line, Verdict.REMOVE, "default:delete"
        elif op.kind == EditKind.INSERT:
            yield Variant.TARGET, op.target_line, Verdict.KEEP, "default:insert"
        elif op.kind == EditKind.MOVE:
            yield Variant.SOURCE, op.source_line, Verdict.KEEP, "default:move"
            yield Variant.TARGET, op.target_line, Verdict.KEEP, "default:move"
        elif op.kind == EditKind.SUBSTITUTE:
            if self._is_rename(op):
                yield Variant.SOURCE, op.source_line, Verdict.KEEP, "default:substitute(rename)"
            else:
                yield Variant.SOURCE, op.source_line, Verdict.REMOVE, "default:substitute"
            yield Variant.TARGET, op.target_line, Verdict.KEEP, "default:substitute"

    def _is_rename(self, op: EditOp) -> bool:
        """Une substitution proche du texte d'origine est un renommage, pas une suppression"""
        ratio = difflib.SequenceMatcher(
            None, op.source_line.key.strip(), op.target_line.key.strip(), autojunk=False
        ).ratio()
        return ratio >= self.rename_similarity

    def _decide(
        self,
        op: EditOp,
        variant: Variant,
        line: LogicalLine,
        proposed: Verdict,
        provenance: str,
        directives: List[Directive],
        anchors: List[int],
        layout: Dict[Tuple[Variant, int], Tuple[LogicalLine, bool]],
        conflicts: List[ConflictingDirectiveWarning],
    ) -> Decision:
        def decision(verdict: Verdict, origin: str) -> Decision:
            return Decision(variant, line.index, verdict, origin, line.raw_text)

        if not op.is_change:
            return decision(proposed, provenance)

        winner = self._winner(variant, line, directives, conflicts)

        if winner is not None and winner.kind == DirectiveKind.MUST_STAY:
            origin = _describe(winner)
            if proposed != Verdict.KEEP:
                origin += f" (overrides {provenance})"
            return decision(Verdict.KEEP, origin)

        if line.is_blank:
            return decision(Verdict.FILTERED, "noise:blank")

        if _is_whitespace_only(op):
            return decision(Verdict.FILTERED, "noise:whitespace")

        if op.kind in (EditKind.INSERT, EditKind.DELETE) and _repeats_anchor(variant, line, layout):
            return decision(Verdict.FILTERED, "noise:run-length")

        if winner is not None and winner.kind == DirectiveKind.MUST_FILTER:
            return decision(Verdict.FILTERED, _describe(winner))

        if winner is not None and winner.kind == DirectiveKind.MAY_REMOVE:
            if proposed == Verdict.REMOVE:
                return decision(proposed, f"{provenance}; licensed by {_describe(winner)}")
            return decision(proposed, provenance)

        if (
            self.anchor_distance is not None
            and op.kind == EditKind.INSERT
            and self._distance_to_anchor(line.index, anchors) > self.anchor_distance
        ):
            return decision(Verdict.FILTERED, f"anchor-distance>{self.anchor_distance}")

        return decision(proposed, provenance)

    @staticmethod
    def _winner(
        variant: Variant,
        line: LogicalLine,
        directives: List[Directive],
        conflicts: List[ConflictingDirectiveWarning],
    ) -> Optional[Directive]:
        """Directive la plus prioritaire; plusieurs natures = conflit enregistré"""
        if not directives:
            return None
        winner = max(directives, key=lambda d: (d.kind.precedence, d.line_index))
        kinds = sorted({d.kind for d in directives}, key=lambda k: k.precedence, reverse=True)
        if len(kinds) > 1:
            warning = ConflictingDirectiveWarning(
                variant.value,
                line.index,
                tuple(k.value for k in kinds),
                winner.kind.value,
            )
            conflicts.append(warning)
            logger.warning("%s", warning)
        return winner

    @staticmethod
    def _distance_to_anchor(index: int, anchors: List[int]) -> int:
        """Distance à l'ancre la plus proche au-dessus (début de fichier sinon)"""
        position = bisect.bisect_left(anchors, index)
        if position == 0:
            return index + 1
        return index - anchors[position - 1]


def _describe(directive: Directive) -> str:
    return f"directive:{directive.kind.value}@{directive.variant.value}:{directive.line_index}"


def _layout(hunks: List[Hunk]) -> Dict[Tuple[Variant, int], Tuple[LogicalLine, bool]]:
    """(variante, ligne) -> (ligne, est une ancre), pour toutes les lignes"""
    layout: Dict[Tuple[Variant, int], Tuple[LogicalLine, bool]] = {}
    for hunk in hunks:
        for op in hunk.ops:
            for variant in Variant:
                line = op.line_for(variant)
                if line is not None:
                    layout[(variant, line.index)] = (line, op.kind == EditKind.EQUAL)
    return layout


def _is_whitespace_only(op: EditOp) -> bool:
    if op.kind != EditKind.SUBSTITUTE:
        return False
    return "".join(op.source_line.key.split()) == "".join(op.target_line.key.split())


def _repeats_anchor(
    variant: Variant,
    line: LogicalLine,
    layout: Dict[Tuple[Variant, int], Tuple[LogicalLine, bool]],
) -> bool:
    """
    Vrai si la ligne est un commentaire répété dont la suite identique
    contiguë touche une ancre : seule la longueur de la suite a changé.
    """
    if not line.is_comment or line.is_blank:
        return False
    for step in (-1, 1):
        index = line.index + step
        while (variant, index) in layout:
            other, anchored = layout[(variant, index)]
            if not other.is_comment or other.key != line.key:
                break
            if anchored:
                return True
            index += step
    return False

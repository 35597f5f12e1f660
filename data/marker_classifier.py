"""
Data Layer: Marker Classifier
Lecture des directives embarquées dans les commentaires
"""
import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from core.errors import ConflictingDirectiveWarning
from core.settings import Settings, get_settings
from domain.entities import Directive, DirectiveKind, FileSnapshot, LogicalLine


logger = logging.getLogger(__name__)

_TRAILING_PUNCTUATION = " \t!.:;,-"


class MarkerClassifier:
    """
    Associe les commentaires marqueurs à une nature de directive et
    calcule la portée de chacune.

    Trois règles de correspondance (insensibles à la casse) :
    - substring : le motif apparaît n'importe où dans le commentaire
    - word : le motif apparaît entre deux frontières de mot
    - line : le commentaire entier (ponctuation finale exclue) est le motif
    """

    def __init__(self, settings: Optional[Settings] = None):
        active = settings or get_settings()
        self.match_mode = active.match_mode
        self.comment_tokens = sorted(
            list(active.line_comment_tokens) + [p[0] for p in active.block_comment_pairs],
            key=len,
            reverse=True,
        )
        self.block_closers = [p[1] for p in active.block_comment_pairs]
        self.rules: List[Tuple[DirectiveKind, List[Pattern]]] = []
        for kind in sorted(DirectiveKind, key=lambda k: k.precedence, reverse=True):
            patterns = active.directive_patterns.get(kind.value, [])
            self.rules.append((kind, [self._compile(p) for p in patterns]))
        self._last_conflicts: List[ConflictingDirectiveWarning] = []

    def _compile(self, pattern: str) -> Pattern:
        escaped = re.escape(pattern.strip())
        if self.match_mode == "word":
            return re.compile(rf"\b{escaped}\b", re.IGNORECASE)
        if self.match_mode == "line":
            return re.compile(rf"^{escaped}$", re.IGNORECASE)
        return re.compile(escaped, re.IGNORECASE)

    def classify(self, snapshot: FileSnapshot) -> List[Directive]:
        """
        Extrait les directives d'un snapshot, dans l'ordre du fichier.

        Args:
            snapshot: La variante à analyser

        Returns:
            Les directives trouvées; les commentaires non reconnus sont ignorés
        """
        directives: List[Directive] = []
        conflicts: List[ConflictingDirectiveWarning] = []

        for line in snapshot:
            if not line.is_comment or line.is_blank:
                continue
            kinds = self._match_kinds(self.comment_body(line.raw_text))
            if not kinds:
                continue

            winner = kinds[0]
            if len(kinds) > 1:
                warning = ConflictingDirectiveWarning(
                    snapshot.variant.value,
                    line.index,
                    tuple(k.value for k in kinds),
                    winner.value,
                )
                conflicts.append(warning)
                logger.warning("%s", warning)

            directives.append(Directive(
                kind=winner,
                variant=snapshot.variant,
                line_index=line.index,
                scope=self._scope(snapshot.lines, line.index),
                text=line.raw_text.strip(),
            ))

        self._last_conflicts = conflicts
        logger.debug("Classified %s: %d directives", snapshot.name, len(directives))
        return directives

    def get_last_conflicts(self) -> List[ConflictingDirectiveWarning]:
        """Conflits relevés lors du dernier appel à classify()"""
        return list(self._last_conflicts)

    def comment_body(self, raw_text: str) -> str:
        """Texte du commentaire sans marqueurs ni ponctuation finale"""
        body = raw_text.strip()
        for token in self.comment_tokens:
            if body.startswith(token):
                body = body[len(token):]
                break
        body = body.strip()
        for closer in self.block_closers:
            if body.endswith(closer):
                body = body[:-len(closer)]
        return body.strip().rstrip(_TRAILING_PUNCTUATION)

    def _match_kinds(self, body: str) -> List[DirectiveKind]:
        """Natures reconnues, de la plus prioritaire à la moins prioritaire"""
        if not body:
            return []
        return [
            kind for kind, patterns in self.rules
            if any(p.search(body) for p in patterns)
        ]

    @staticmethod
    def _scope(lines: Tuple[LogicalLine, ...], index: int) -> Tuple[int, ...]:
        """
        Portée d'une directive : la première suite contiguë de lignes de code
        qui la suit, commentaires intermédiaires sautés. Une ligne vide ou la
        fin du fichier avant tout code ramène la portée à la directive elle-même.
        """
        position = index + 1
        while position < len(lines) and lines[position].is_comment and not lines[position].is_blank:
            position += 1

        if position >= len(lines) or lines[position].is_blank:
            return (index,)

        scope = []
        while position < len(lines) and lines[position].is_code:
            scope.append(position)
            position += 1
        return tuple(scope)


def directive_map(directives: List[Directive]) -> Dict[Tuple[str, int], List[Directive]]:
    """
    Index creux (variante, ligne) -> directives dont la portée couvre la ligne.
    """
    mapping: Dict[Tuple[str, int], List[Directive]] = {}
    for directive in directives:
        for index in directive.scope:
            mapping.setdefault((directive.variant.value, index), []).append(directive)
    return mapping

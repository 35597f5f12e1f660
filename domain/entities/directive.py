"""
Domain Entity: Directive
Commentaire marqueur qui gouverne le sort des lignes voisines
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Tuple

from .snapshot import Variant


class DirectiveKind(Enum):
    """Nature d'une directive"""
    MUST_STAY = "must_stay"
    MAY_REMOVE = "may_remove"
    MUST_FILTER = "must_filter"

    @property
    def precedence(self) -> int:
        """Plus grand = plus prioritaire"""
        return _PRECEDENCE[self]


_PRECEDENCE = {
    DirectiveKind.MUST_STAY: 3,
    DirectiveKind.MUST_FILTER: 2,
    DirectiveKind.MAY_REMOVE: 1,
}


@dataclass(frozen=True)
class Directive:
    """
    Une directive analysée.

    line_index est la ligne de commentaire qui porte le marqueur, scope les
    lignes qu'elle gouverne (la ligne elle-même si aucun code ne suit).
    """
    kind: DirectiveKind
    variant: Variant
    line_index: int
    scope: Tuple[int, ...]
    text: str = ""

    @property
    def is_self_scoped(self) -> bool:
        return self.scope == (self.line_index,)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "variant": self.variant.value,
            "lineIndex": self.line_index,
            "scope": list(self.scope),
            "text": self.text,
        }

"""
Domain Entity: EditOp / Hunk
Représente le script d'édition entre deux variantes
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple

from .directive import Directive
from .snapshot import LogicalLine, Variant


class EditKind(Enum):
    """Type d'opération d'édition"""
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"
    SUBSTITUTE = "substitute"
    MOVE = "move"


@dataclass(frozen=True)
class EditOp:
    """
    Une opération du script d'édition.
    Référence au plus une ligne source et au plus une ligne cible.
    """
    kind: EditKind
    source_line: Optional[LogicalLine] = None
    target_line: Optional[LogicalLine] = None

    def __post_init__(self):
        has_source = self.source_line is not None
        has_target = self.target_line is not None
        if self.kind == EditKind.INSERT and (has_source or not has_target):
            raise ValueError("INSERT requires a target line only")
        if self.kind == EditKind.DELETE and (has_target or not has_source):
            raise ValueError("DELETE requires a source line only")
        if self.kind in (EditKind.EQUAL, EditKind.SUBSTITUTE, EditKind.MOVE) and not (has_source and has_target):
            raise ValueError(f"{self.kind.value.upper()} requires both lines")

    @property
    def source_index(self) -> Optional[int]:
        return self.source_line.index if self.source_line is not None else None

    @property
    def target_index(self) -> Optional[int]:
        return self.target_line.index if self.target_line is not None else None

    @property
    def is_change(self) -> bool:
        return self.kind != EditKind.EQUAL

    def line_for(self, variant: Variant) -> Optional[LogicalLine]:
        return self.source_line if variant == Variant.SOURCE else self.target_line

    def to_dict(self) -> Dict[str, Any]:
        """Convertit l'opération en dictionnaire"""
        return {
            "kind": self.kind.value,
            "sourceIndex": self.source_index,
            "targetIndex": self.target_index,
            "sourceText": self.source_line.raw_text if self.source_line else None,
            "targetText": self.target_line.raw_text if self.target_line else None,
        }


@dataclass
class Hunk:
    """
    Une suite contiguë d'opérations.
    Les directives sont rattachées après la classification.
    """
    ops: List[EditOp]
    directives: List[Directive] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(op.is_change for op in self.ops)

    def indices(self, variant: Variant) -> Tuple[int, ...]:
        """Indices de ligne couverts par le hunk pour une variante"""
        lines = (op.line_for(variant) for op in self.ops)
        return tuple(line.index for line in lines if line is not None)

    def span(self, variant: Variant) -> Optional[Tuple[int, int]]:
        indices = self.indices(variant)
        if not indices:
            return None
        return min(indices), max(indices)

    def attach_directives(self, directives: List[Directive]) -> None:
        """Garde les directives dont la portée touche le hunk"""
        touched = {
            Variant.SOURCE: set(self.indices(Variant.SOURCE)),
            Variant.TARGET: set(self.indices(Variant.TARGET)),
        }
        self.directives = [
            d for d in directives
            if touched[d.variant].intersection(d.scope)
        ]


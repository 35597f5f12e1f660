"""
Domain Entity: Decision
Verdict final par ligne et rapport de comparaison
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .directive import Directive
from .edit_script import EditOp
from .snapshot import Variant


class Verdict(Enum):
    """Sort final d'une ligne"""
    KEEP = "keep"
    REMOVE = "remove"
    FILTERED = "filtered"


@dataclass(frozen=True)
class Decision:
    """
    Verdict pour une ligne (variant, line_index) et sa provenance :
    la directive ou la politique par défaut qui l'a produit.
    """
    variant: Variant
    line_index: int
    verdict: Verdict
    provenance: str
    text: str = ""

    @property
    def key(self) -> tuple:
        return (self.variant.value, self.line_index)

    def to_dict(self) -> Dict[str, Any]:
        """Enregistrement sérialisable"""
        return {
            "variant": self.variant.value,
            "lineIndex": self.line_index,
            "verdict": self.verdict.value,
            "provenance": self.provenance,
        }


@dataclass
class ComparisonReport:
    """
    Résultat complet d'une comparaison entre deux variantes.
    Consommé par le Reporter.
    """
    source_path: str
    target_path: str
    decisions: List[Decision] = field(default_factory=list)
    ops: List[EditOp] = field(default_factory=list)
    directives: List[Directive] = field(default_factory=list)
    conflicts: List[Any] = field(default_factory=list)
    elapsed_ms: Optional[float] = None

    def count(self, verdict: Verdict, variant: Optional[Variant] = None) -> int:
        return sum(
            1 for d in self.decisions
            if d.verdict == verdict and (variant is None or d.variant == variant)
        )

    def decision_for(self, variant: Variant, line_index: int) -> Optional[Decision]:
        for decision in self.decisions:
            if decision.variant == variant and decision.line_index == line_index:
                return decision
        return None

    def get_summary(self) -> str:
        """Retourne un résumé des verdicts"""
        return (
            f"{self.source_path} -> {self.target_path}: "
            f"keep={self.count(Verdict.KEEP)} "
            f"remove={self.count(Verdict.REMOVE)} "
            f"filtered={self.count(Verdict.FILTERED)} "
            f"conflicts={len(self.conflicts)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le rapport en dictionnaire"""
        return {
            "source": self.source_path,
            "target": self.target_path,
            "summary": {
                "keep": self.count(Verdict.KEEP),
                "remove": self.count(Verdict.REMOVE),
                "filtered": self.count(Verdict.FILTERED),
            },
            "decisions": [d.to_dict() for d in self.decisions],
            "directives": [d.to_dict() for d in self.directives],
            "edits": [op.to_dict() for op in self.ops],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }

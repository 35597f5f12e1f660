"""
Core Errors
Exceptions partagées par toutes les couches de la comparaison
"""
from typing import Optional


class MalformedInputError(Exception):
    """
    Entrée illisible ou syntaxe de commentaire non équilibrée.
    Fatale : la comparaison s'arrête avant le diff.
    """

    def __init__(self, message: str, path: Optional[str] = None, line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        self.reason = message
        location = path or "<input>"
        if line_number is not None:
            location = f"{location}:{line_number}"
        super().__init__(f"{location}: {message}")


class ComparisonTimeoutError(TimeoutError):
    """Le budget de temps d'une comparaison a été dépassé"""

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms
        if timeout_ms is None:
            super().__init__("Comparison abandoned: deadline exceeded")
        else:
            super().__init__(f"Comparison abandoned after {timeout_ms} ms")


class ConflictingDirectiveWarning(UserWarning):
    """
    Plusieurs directives de nature différente visent la même ligne.
    Jamais levée : enregistrée dans le rapport et résolue par précédence.
    """

    def __init__(self, variant: str, line_index: int, kinds: tuple, winner: str):
        self.variant = variant
        self.line_index = line_index
        self.kinds = kinds
        self.winner = winner
        super().__init__(
            f"{variant}:{line_index} has conflicting directives "
            f"{', '.join(kinds)}; resolved as {winner}"
        )

    def to_dict(self) -> dict:
        return {
            "variant": self.variant,
            "lineIndex": self.line_index,
            "kinds": list(self.kinds),
            "winner": self.winner,
        }

    def __eq__(self, other):
        if not isinstance(other, ConflictingDirectiveWarning):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.variant, self.line_index, self.kinds, self.winner))

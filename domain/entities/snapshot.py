"""
Domain Entity: FileSnapshot
Une variante de fichier découpée en lignes logiques
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple


class Variant(Enum):
    """Côté de la comparaison"""
    SOURCE = "source"
    TARGET = "target"


@dataclass(frozen=True)
class LogicalLine:
    """Une ligne d'un fichier, texte d'origine conservé"""
    index: int
    raw_text: str
    is_comment: bool = False
    is_blank: bool = False
    key: Optional[str] = None

    def __post_init__(self):
        if self.index < 0:
            raise ValueError("Line index cannot be negative")
        if self.key is None:
            # frozen dataclass: la clé par défaut est le texte brut
            object.__setattr__(self, "key", self.raw_text)

    @property
    def is_code(self) -> bool:
        return not self.is_comment and not self.is_blank


@dataclass(frozen=True)
class FileSnapshot:
    """
    Séquence ordonnée de LogicalLine pour une variante.
    Immuable, créée une seule fois par lecture.
    """
    variant: Variant
    lines: Tuple[LogicalLine, ...] = field(default_factory=tuple)
    path: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))
        for position, line in enumerate(self.lines):
            if line.index != position:
                raise ValueError(f"Line at position {position} has index {line.index}")

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[LogicalLine]:
        return iter(self.lines)

    def __getitem__(self, index: int) -> LogicalLine:
        return self.lines[index]

    @property
    def name(self) -> str:
        return self.path or f"<{self.variant.value}>"

    @classmethod
    def empty(cls, variant: Variant, path: Optional[str] = None) -> "FileSnapshot":
        """Snapshot d'un fichier absent d'une des deux variantes"""
        return cls(variant=variant, lines=(), path=path)

"""Domain Entities"""
from .snapshot import Variant, LogicalLine, FileSnapshot
from .directive import Directive, DirectiveKind
from .edit_script import EditKind, EditOp, Hunk
from .decision import Verdict, Decision, ComparisonReport

__all__ = [
    "Variant", "LogicalLine", "FileSnapshot",
    "Directive", "DirectiveKind",
    "EditKind", "EditOp", "Hunk",
    "Verdict", "Decision", "ComparisonReport",
]

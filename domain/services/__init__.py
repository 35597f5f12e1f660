"""Domain Services"""
from .comparison_service import ComparisonService, ComparisonOutcome
from .policy_resolver import PolicyResolver

__all__ = ["ComparisonService", "ComparisonOutcome", "PolicyResolver"]

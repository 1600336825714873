"""
Submission Quality & Reputation Policies
"""
from .validators import (
    ValidationResult,
    create_submission_validator,
    parse_tags,
    sanitize_string,
    validate_email,
    validate_submission,
)
from .trust import calculate_trust_score, decide_status
from .badges import UserStats, evaluate_badges

__all__ = [
    "ValidationResult",
    "create_submission_validator",
    "parse_tags",
    "sanitize_string",
    "validate_email",
    "validate_submission",
    "calculate_trust_score",
    "decide_status",
    "UserStats",
    "evaluate_badges",
]

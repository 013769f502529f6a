"""
Utility modules for the repository workspace service.
"""

from repodeck.utils.logging import (
    get_logger,
    setup_logging,
    LogContext,
    log_pr_action,
    log_review_transition,
    log_api_call,
    log_error_with_context,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "log_pr_action",
    "log_review_transition",
    "log_api_call",
    "log_error_with_context",
]

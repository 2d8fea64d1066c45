"""
Centralized error handling and user feedback for reach planning.

Maps calculation failures, resolver errors and guardrail violations onto a
small error taxonomy and turns them into notifications the UI can show.
Nothing here is fatal: every error is recovered at the tactic or plan level.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from models.data_models import ResolvedTactic
from .calculations import InvalidInputError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for reach planning."""
    INVALID_INPUT = "invalid_input"
    INSUFFICIENT_INPUT = "insufficient_input"
    IMPOSSIBLE_RESULT = "impossible_result"
    COMBINATION_BLOCKED = "combination_blocked"
    VALIDATION_ERROR = "validation_error"
    DATA_ERROR = "data_error"
    SYSTEM_ERROR = "system_error"


@dataclass
class ErrorInfo:
    """Structured error information."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class ErrorHandler:
    """
    Centralized error handling and user feedback system.

    Keeps a bounded history of logged errors for the diagnostics panel.
    """

    def __init__(self, max_history: int = 100):
        self.error_history: List[ErrorInfo] = []
        self.max_history = max_history

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Classify an exception and return appropriate ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, InvalidInputError):
            return ErrorInfo(
                category=ErrorCategory.INVALID_INPUT,
                severity=ErrorSeverity.ERROR,
                message=f"Invalid input in {context}: {str(error)}",
                user_message=str(error),
                suggested_action="Correct the highlighted value and calculate again.",
            )

        if isinstance(error, (FileNotFoundError, PermissionError)):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Data file unavailable in {context}: {str(error)}",
                user_message="The audience data file could not be read.",
                technical_details=str(error),
                suggested_action="Check AUDIENCE_DATA_PATH or enter audience sizes manually.",
            )

        if isinstance(error, (ValueError, KeyError)):
            return ErrorInfo(
                category=ErrorCategory.DATA_ERROR,
                severity=ErrorSeverity.ERROR,
                message=f"Data processing error in {context}: {str(error)}",
                user_message="A data file is malformed or in an unexpected format.",
                technical_details=str(error),
                suggested_action="Check the file against the expected format and try again.",
            )

        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.CRITICAL,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="An unexpected error occurred. Please try again.",
            technical_details=str(error),
            suggested_action="Reload the page. If the problem persists, export your plan and report the issue.",
        )

    def from_resolution(self, resolved: ResolvedTactic) -> List[ErrorInfo]:
        """Convert a resolved tactic's error strings into ErrorInfo entries."""
        infos = []
        for error in resolved.errors:
            lowered = error.lower()
            if lowered.startswith("insufficient inputs"):
                category = ErrorCategory.INSUFFICIENT_INPUT
                action = "Provide GRPs, Gross Impressions, Cost+CPM, or Reach%+Frequency."
            elif "exceeds 100%" in lowered:
                category = ErrorCategory.IMPOSSIBLE_RESULT
                action = "Check that GRPs and Frequency are consistent with each other."
            else:
                category = ErrorCategory.INVALID_INPUT
                action = "Correct the input values and calculate again."
            infos.append(ErrorInfo(
                category=category,
                severity=ErrorSeverity.ERROR,
                message=f"Tactic '{resolved.tactic_name}': {error}",
                user_message=f"{resolved.tactic_name}: {error}",
                suggested_action=action,
            ))
        return infos

    def validation_failed(self, tactic_label: str, field_errors: Dict[str, List[str]]) -> ErrorInfo:
        """ErrorInfo summarising the field validation failures of one tactic row."""
        messages = [message for field_messages in field_errors.values() for message in field_messages]
        return ErrorInfo(
            category=ErrorCategory.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Tactic '{tactic_label}' failed validation: {'; '.join(messages)}",
            user_message=f"{tactic_label}: {'; '.join(messages)}",
            suggested_action="Fix the highlighted fields and calculate again.",
        )

    def combination_blocked(self, message: str) -> ErrorInfo:
        """ErrorInfo for tactics that cannot be combined into one plan."""
        return ErrorInfo(
            category=ErrorCategory.COMBINATION_BLOCKED,
            severity=ErrorSeverity.ERROR,
            message=f"Combination blocked: {message}",
            user_message=message,
            suggested_action="Select only tactics that share a geography and audience.",
        )

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Create a user-friendly notification from error information.

        Args:
            error_info: Structured error information

        Returns:
            Dictionary with notification data for UI display
        """
        notification_type_map = {
            ErrorSeverity.INFO: "info",
            ErrorSeverity.WARNING: "warning",
            ErrorSeverity.ERROR: "error",
            ErrorSeverity.CRITICAL: "error"
        }

        notification = {
            'type': notification_type_map[error_info.severity],
            'title': self._get_error_title(error_info),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            'dismissible': error_info.severity in [ErrorSeverity.INFO, ErrorSeverity.WARNING],
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action

        if error_info.technical_details and error_info.severity == ErrorSeverity.CRITICAL:
            notification['technical_details'] = error_info.technical_details

        return notification

    def _get_error_title(self, error_info: ErrorInfo) -> str:
        """Get appropriate title for error notification."""
        title_map = {
            ErrorCategory.INVALID_INPUT: "Invalid Input",
            ErrorCategory.INSUFFICIENT_INPUT: "Not Enough Inputs",
            ErrorCategory.IMPOSSIBLE_RESULT: "Impossible Result",
            ErrorCategory.COMBINATION_BLOCKED: "Cannot Combine Tactics",
            ErrorCategory.VALIDATION_ERROR: "Input Validation Error",
            ErrorCategory.DATA_ERROR: "Data Error",
            ErrorCategory.SYSTEM_ERROR: "System Error",
        }

        return title_map.get(error_info.category, "Error")

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Log error information and keep it in the bounded history.

        Args:
            error_info: Structured error information
            context: Additional context
        """
        self.error_history.append(error_info)

        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

        log_message = f"{context}: {error_info.message}"

        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Get error statistics for the diagnostics panel.

        Returns:
            Dictionary with error statistics
        """
        if not self.error_history:
            return {'total_errors': 0}

        category_counts = {}
        severity_counts = {}

        recent_errors = [
            err for err in self.error_history
            if err.timestamp > datetime.now() - timedelta(hours=24)
        ]

        for error in recent_errors:
            category_counts[error.category.value] = category_counts.get(error.category.value, 0) + 1
            severity_counts[error.severity.value] = severity_counts.get(error.severity.value, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent_errors),
            'category_breakdown': category_counts,
            'severity_breakdown': severity_counts,
        }


# Global error handler instance
error_handler = ErrorHandler()

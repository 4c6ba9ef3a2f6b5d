"""
Audit Logger

DESIGN DECISION: Every significant step of a request is logged.
This provides:
1. Traceability from question to answer
2. Debugging capability when the store or remote endpoint fails
3. Insight into cache hits and fallbacks

The audit logger:
- Writes structured JSON lines through structlog
- Never receives question text or amounts, only lengths and counts
- Supports correlation IDs to trace the events of one question
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finchat.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service for the query engine.

    Events are rendered as structured log lines. The logger holds no
    state besides the structlog handle, so one instance can be shared.
    """

    def __init__(self, logger_name: str = "finchat.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_question_received(
        self,
        user_id: str,
        question: str,
        correlation_id: UUID,
    ) -> None:
        """Log an incoming question (length only)."""
        self.log(AuditEventBuilder.question_received(
            user_id=user_id,
            question_length=len(question),
            correlation_id=correlation_id,
        ))

    def log_response_cache_hit(self, user_id: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.response_cache_hit(user_id, correlation_id))

    def log_context_cache_hit(self, user_id: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.context_cache_hit(user_id, correlation_id))

    def log_context_aggregated(
        self,
        user_id: str,
        account_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a freshly built snapshot."""
        self.log(AuditEventBuilder.context_aggregated(
            user_id=user_id,
            account_count=account_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    def log_aggregation_failed(
        self,
        user_id: str,
        error: BaseException,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a data-access failure that was absorbed."""
        self.log(AuditEventBuilder.aggregation_failed(
            user_id=user_id,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_remote_attempt_failed(
        self,
        user_id: str,
        attempt: int,
        error: BaseException,
        correlation_id: UUID,
    ) -> None:
        """Log one failed call to the remote endpoint."""
        self.log(AuditEventBuilder.remote_attempt_failed(
            user_id=user_id,
            attempt=attempt,
            error_type=type(error).__name__,
            correlation_id=correlation_id,
        ))

    def log_fallback_used(
        self,
        user_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.fallback_used(user_id, reason, correlation_id))

    def log_response_generated(
        self,
        user_id: str,
        source: str,
        response: str,
        correlation_id: UUID,
    ) -> None:
        """Log a produced answer (length only)."""
        self.log(AuditEventBuilder.response_generated(
            user_id=user_id,
            source=source,
            response_length=len(response),
            correlation_id=correlation_id,
        ))

    def log_request_failed(
        self,
        user_id: str,
        error: BaseException,
        correlation_id: UUID,
    ) -> None:
        """Log a request that ended in the generic failure."""
        self.log(AuditEventBuilder.request_failed(
            user_id=user_id,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_conversation_cleared(self, user_id: str) -> None:
        self.log(AuditEventBuilder.conversation_cleared(user_id))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each question.
    Pass it through all subsequent operations.
    """
    return uuid4()

"""
Audit Models for Finchat

Every significant step of answering a question is logged for audit purposes.
This provides:
1. Traceability of each request from question to answer
2. Debugging information when the store or remote endpoint misbehaves
3. Visibility into cache effectiveness and fallback frequency

DESIGN DECISION: Audit events never carry financial data or question text.
A question is described by its length only; amounts never leave the engine.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of the request pipeline has its own event type.
    """
    # Request lifecycle
    QUESTION_RECEIVED = "question_received"
    RESPONSE_GENERATED = "response_generated"
    REQUEST_FAILED = "request_failed"

    # Caching
    RESPONSE_CACHE_HIT = "response_cache_hit"
    CONTEXT_CACHE_HIT = "context_cache_hit"

    # Aggregation
    CONTEXT_AGGREGATED = "context_aggregated"
    AGGREGATION_FAILED = "aggregation_failed"

    # Remote generation
    REMOTE_ATTEMPT_FAILED = "remote_attempt_failed"
    FALLBACK_USED = "fallback_used"

    # Conversation
    CONVERSATION_CLEARED = "conversation_cleared"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant step creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'context', 'remote')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one question)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.question_received(user_id, 23, correlation_id)
        event = AuditEventBuilder.fallback_used(user_id, "timeout", correlation_id)
    """

    @staticmethod
    def question_received(
        user_id: str,
        question_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUESTION_RECEIVED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Question received",
            details={
                "question_length": question_length,
            },
        )

    @staticmethod
    def response_cache_hit(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_CACHE_HIT,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Answer served from response cache",
        )

    @staticmethod
    def context_cache_hit(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_CACHE_HIT,
            severity=AuditSeverity.DEBUG,
            entity_type="context",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Financial snapshot served from context cache",
        )

    @staticmethod
    def context_aggregated(
        user_id: str,
        account_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_AGGREGATED,
            entity_type="context",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Financial snapshot aggregated",
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def aggregation_failed(
        user_id: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGGREGATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="context",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Aggregation failed, using empty snapshot",
            error_type=error_type,
            error_message=error_message,
        )

    @staticmethod
    def remote_attempt_failed(
        user_id: str,
        attempt: int,
        error_type: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_ATTEMPT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="remote",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Remote generation attempt {attempt} failed",
            details={
                "attempt": attempt,
            },
            error_type=error_type,
        )

    @staticmethod
    def fallback_used(
        user_id: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="remote",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Falling back to local generation",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def response_generated(
        user_id: str,
        source: str,
        response_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_GENERATED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Response generated ({source})",
            details={
                "source": source,
                "response_length": response_length,
            },
        )

    @staticmethod
    def request_failed(
        user_id: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Request could not be answered",
            error_type=error_type,
            error_message=error_message,
        )

    @staticmethod
    def conversation_cleared(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONVERSATION_CLEARED,
            entity_type="user",
            entity_id=user_id,
            description="Conversation history cleared",
        )

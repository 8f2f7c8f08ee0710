"""Core type definitions for the Kyozo waitlist.

This module defines the fundamental types used throughout the waitlist:
- Step: The ordered steps of the signup form
- FormState: Lifecycle states of a form session
- Direction: Navigation direction between steps (presentational only)
- EventType: Audit event types for the event stream
- FieldErrorCode: Validation error codes for individual fields
- Segment: Classification tags selecting an extended question set
"""

from enum import Enum, IntEnum
from typing import Tuple


class Step(IntEnum):
    """Ordered steps of the waitlist signup form.

    Step values are 1-based and double as the session's step index.
    """
    IDENTITY = 1
    CONTACT = 2
    CREATIVE_WORK = 3
    BETA_INTEREST = 4
    RESONANCE = 5
    COMMUNITY = 6


FIRST_STEP = Step.IDENTITY
LAST_STEP = Step.COMMUNITY
TOTAL_STEPS = len(Step)


class FormState(str, Enum):
    """Form session states.

    One state per step plus the terminal SUBMITTED state.
    """
    STEP_1 = "step_1"
    STEP_2 = "step_2"
    STEP_3 = "step_3"
    STEP_4 = "step_4"
    STEP_5 = "step_5"
    STEP_6 = "step_6"
    SUBMITTED = "submitted"

    @classmethod
    def for_step(cls, step: int) -> "FormState":
        return cls(f"step_{int(step)}")

    @property
    def step(self) -> int:
        """Step index for this state, or 0 for SUBMITTED."""
        if self is FormState.SUBMITTED:
            return 0
        return int(self.value.split("_")[1])


class Direction(str, Enum):
    """Navigation direction of the last step change."""
    NONE = "none"
    FORWARD = "forward"
    BACKWARD = "backward"


class EventType(str, Enum):
    """Audit event types for the event stream."""
    SESSION_CREATED = "session.created"
    SESSION_EXPIRED = "session.expired"
    FIELD_UPDATED = "field.updated"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    STEP_ADVANCED = "step.advanced"
    STEP_RETREATED = "step.retreated"
    SUBMISSION_STARTED = "submission.started"
    IDENTITY_ACQUIRED = "identity.acquired"
    SUBMISSION_PERSISTED = "submission.persisted"
    NOTIFICATION_SENT = "notification.sent"
    NOTIFICATION_FAILED = "notification.failed"
    SUBMISSION_FAILED = "submission.failed"
    SUBMISSION_COMPLETED = "submission.completed"
    SUBMISSION_DELETED = "submission.deleted"
    ADMIN_LOGIN_SUCCEEDED = "admin.login_succeeded"
    ADMIN_LOGIN_FAILED = "admin.login_failed"
    ADMIN_REPLY_SENT = "admin.reply_sent"
    ADMIN_REPLY_FAILED = "admin.reply_failed"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_FORMAT = "invalid_format"


class Segment(str, Enum):
    """Segment tags that select an extended question set."""
    ARTIST = "artist"
    COMMUNITY = "community"


# Option vocabularies offered by the form. Informational only: validation
# checks presence, never membership.
ROLE_TYPES: Tuple[str, ...] = (
    "artist-musician-performer",
    "creative-professional",
    "curator-cultural-institution",
    "community-builder",
    "explorer",
    "catalyst",
)

RESONANCE_REASONS: Tuple[str, ...] = (
    "control",
    "connection",
    "expression",
    "privacy",
    "community",
    "freedom",
)

COMMUNITY_SELECTIONS: Tuple[str, ...] = ("asia", "willer")

RESONANCE_LEVELS: Tuple[int, ...] = (1, 2, 3, 4, 5)


__all__ = [
    "Step",
    "FIRST_STEP",
    "LAST_STEP",
    "TOTAL_STEPS",
    "FormState",
    "Direction",
    "EventType",
    "FieldErrorCode",
    "Segment",
    "ROLE_TYPES",
    "RESONANCE_REASONS",
    "COMMUNITY_SELECTIONS",
    "RESONANCE_LEVELS",
]

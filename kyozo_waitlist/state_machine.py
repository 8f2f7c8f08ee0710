"""Form session state machine for the waitlist signup form.

A FormSession is the explicit, passed-down object holding everything one
visitor's form needs: the in-progress Submission, the current step, the
navigation direction, the current field errors, and the in-flight flag that
guards the final submit. It is created when the form opens and discarded
once the submission is stored or the visitor leaves.

States are one per step plus the terminal SUBMITTED state:

    STEP_1 <-> STEP_2 <-> ... <-> STEP_6 -> SUBMITTED

``advance`` validates the current step and either stays put (surfacing the
errors), moves forward, or on the last step runs the submission pipeline.
``retreat`` moves back one step without validating and never loses data.

Usage:
    >>> session = FormSession(session_id="fs_123")
    >>> session.state
    <FormState.STEP_1: 'step_1'>
    >>> session.update_field("firstName", "Sarah")
    >>> session.submission.first_name
    'Sarah'
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
import logging

from kyozo_waitlist.errors import (
    IdentityAcquisitionError,
    PersistenceError,
    WaitlistError,
)
from kyozo_waitlist.events import EventEmitter, FormEvent
from kyozo_waitlist.pipeline import SubmissionPipeline
from kyozo_waitlist.submission import FIELD_NAMES, Submission
from kyozo_waitlist.types import Direction, EventType, FormState, LAST_STEP
from kyozo_waitlist.validation import validate_step

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(WaitlistError):
    """Raised when attempting a transition the form does not allow.

    Attributes:
        current_state: The state before the attempted transition
        target_state: The state that was attempted
    """

    def __init__(self, current_state: FormState, target_state: FormState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Each step may go back one and forward one; only the last step may submit.
VALID_TRANSITIONS: Dict[FormState, Set[FormState]] = {
    FormState.STEP_1: {FormState.STEP_2},
    FormState.STEP_2: {FormState.STEP_1, FormState.STEP_3},
    FormState.STEP_3: {FormState.STEP_2, FormState.STEP_4},
    FormState.STEP_4: {FormState.STEP_3, FormState.STEP_5},
    FormState.STEP_5: {FormState.STEP_4, FormState.STEP_6},
    FormState.STEP_6: {FormState.STEP_5, FormState.SUBMITTED},
    # Terminal state - no transitions allowed
    FormState.SUBMITTED: set(),
}

# Attribute name -> stored (form) field name
_FORM_NAMES = {attr: name for name, attr in FIELD_NAMES.items()}


@dataclass(frozen=True)
class AdvanceResult:
    """Outcome of one ``advance`` call.

    Attributes:
        state: Session state after the call
        errors: Field errors blocking the step (empty when it passed)
        failure: User-facing message when the submission attempt failed
        duplicate: True when the call was ignored because a submit is in flight
        submission_id: Store id once submitted
    """
    state: FormState
    errors: Dict[str, str] = field(default_factory=dict)
    failure: Optional[str] = None
    duplicate: bool = False
    submission_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors and self.failure is None and not self.duplicate

    @property
    def submitted(self) -> bool:
        return self.state is FormState.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "ok": self.ok,
            "state": self.state.value,
            "errors": dict(self.errors),
        }
        if self.failure is not None:
            result["failure"] = self.failure
        if self.duplicate:
            result["duplicate"] = True
        if self.submission_id is not None:
            result["submissionId"] = self.submission_id
        return result


@dataclass
class FormSession:
    """One visitor's pass through the signup form.

    Attributes:
        session_id: Unique identifier for this session
        pipeline: Pipeline invoked when the last step is confirmed
        submission: The in-progress submission
        state: Current state (one per step, or SUBMITTED)
        direction: Direction of the last step change, for presentation
        errors: Field name -> message for the current step
        in_flight: Set while a submission attempt is running
        user_id: Identity token acquired by an earlier attempt
        submission_id: Store id after a successful submission
        last_failure: Message of the last failed submission attempt
    """

    session_id: str
    pipeline: Optional[SubmissionPipeline] = field(default=None, repr=False)
    submission: Submission = field(default_factory=Submission)
    state: FormState = FormState.STEP_1
    direction: Direction = Direction.NONE
    errors: Dict[str, str] = field(default_factory=dict)
    in_flight: bool = False
    user_id: Optional[str] = None
    submission_id: Optional[str] = None
    last_failure: Optional[str] = None
    emitter: EventEmitter = field(default_factory=EventEmitter, repr=False)

    @property
    def current_step(self) -> int:
        """Step index 1..6; stays on the last step once submitted."""
        return int(LAST_STEP) if self.state is FormState.SUBMITTED else self.state.step

    def can_transition_to(self, target_state: FormState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, target_state: FormState) -> None:
        """Move to ``target_state``.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid state transition: cannot transition from "
                    f"'{self.state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self.state.value}' are: "
                    f"{', '.join(sorted(s.value for s in VALID_TRANSITIONS[self.state]))}"
                    if VALID_TRANSITIONS[self.state]
                    else f"Invalid state transition: '{self.state.value}' is a terminal state, "
                    f"no transitions are allowed."
                ),
            )
        self.state = target_state

    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS[self.state]) == 0

    def _ensure_open(self, action: str) -> None:
        if self.is_terminal():
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=self.state,
                message=f"Cannot {action}: the form has already been submitted.",
            )

    def update_field(self, name: str, value: Any) -> None:
        """Set one field and clear its error immediately.

        Changing the resonance level leaves chosen reasons in place; they are
        checked again on the next ``advance``.
        """
        self._ensure_open("edit fields")
        self.submission.set_field(name, value)
        self._clear_error(name)

    def update_fields(self, fields: Dict[str, Any]) -> None:
        """Set several fields at once, all or nothing.

        Every value is coerced on a copy first; if any name or value is
        rejected the session is left unchanged.

        Raises:
            KeyError: If a field name is unknown
            ValueError: If a value cannot be coerced
        """
        self._ensure_open("edit fields")
        staged = self.submission.freeze()
        for name, value in fields.items():
            staged.set_field(name, value)
        for name, value in fields.items():
            self.update_field(name, value)

    def toggle(self, name: str, tag: str) -> List[str]:
        """Add or remove ``tag`` in a multi-select field."""
        self._ensure_open("edit fields")
        selected = self.submission.toggle(name, tag)
        self._clear_error(name)
        return selected

    def toggle_role_type(self, role: str) -> List[str]:
        return self.toggle("roleTypes", role)

    def toggle_resonance_reason(self, reason: str) -> List[str]:
        return self.toggle("resonanceReasons", reason)

    def toggle_community_selection(self, community: str) -> List[str]:
        return self.toggle("communitySelections", community)

    def _clear_error(self, name: str) -> None:
        form_name = _FORM_NAMES.get(name, name)
        self.errors.pop(form_name, None)
        self._emit(EventType.FIELD_UPDATED, {"field": form_name})

    def validate(self) -> Dict[str, str]:
        """Errors blocking the current step, without changing the session."""
        return validate_step(self.current_step, self.submission)

    async def advance(self) -> AdvanceResult:
        """Validate the current step, then move forward or submit.

        On the last step the pipeline runs at most once at a time: calls made
        while a submission is in flight return immediately with
        ``duplicate=True``.

        Raises:
            InvalidStateTransitionError: If the form was already submitted
        """
        self._ensure_open("advance")
        if self.in_flight:
            logger.info("Already submitting session %s, ignoring duplicate call", self.session_id)
            return AdvanceResult(state=self.state, duplicate=True)

        step = self.current_step
        self.errors = validate_step(step, self.submission)
        if self.errors:
            self._emit(EventType.VALIDATION_FAILED, {"step": step, "errors": dict(self.errors)})
            return AdvanceResult(state=self.state, errors=dict(self.errors))
        self._emit(EventType.VALIDATION_PASSED, {"step": step})

        if step < LAST_STEP:
            self.transition_to(FormState.for_step(step + 1))
            self.direction = Direction.FORWARD
            self._emit(EventType.STEP_ADVANCED, {"from": step, "to": step + 1})
            return AdvanceResult(state=self.state)

        return await self._submit()

    async def _submit(self) -> AdvanceResult:
        if self.pipeline is None:
            raise WaitlistError(f"Form session {self.session_id} has no submission pipeline")

        self.in_flight = True
        self.last_failure = None
        try:
            result = await self.pipeline.run(
                self.submission.freeze(),
                user_id=self.user_id,
                session_id=self.session_id,
            )
        except (IdentityAcquisitionError, PersistenceError) as exc:
            if isinstance(exc, PersistenceError) and exc.user_id:
                self.user_id = exc.user_id
            self.in_flight = False
            self.last_failure = str(exc)
            return AdvanceResult(state=self.state, failure=self.last_failure)
        except BaseException:
            self.in_flight = False
            raise

        self.in_flight = False
        self.user_id = result.user_id
        self.submission_id = result.submission_id
        self.transition_to(FormState.SUBMITTED)
        self.direction = Direction.FORWARD
        self._emit(EventType.SUBMISSION_COMPLETED, {"submissionId": result.submission_id})
        return AdvanceResult(state=self.state, submission_id=result.submission_id)

    def retreat(self) -> int:
        """Go back one step. No validation; entered data is kept.

        A no-op on the first step and while a submission is in flight.
        Returns the resulting step index.
        """
        self._ensure_open("go back")
        step = self.current_step
        if step > 1 and not self.in_flight:
            self.transition_to(FormState.for_step(step - 1))
            self.direction = Direction.BACKWARD
            self._emit(EventType.STEP_RETREATED, {"from": step, "to": step - 1})
        return self.current_step

    def _emit(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> None:
        self.emitter.emit(FormEvent.create(event_type, self.session_id, payload))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the session for the API."""
        result: Dict[str, Any] = {
            "sessionId": self.session_id,
            "state": self.state.value,
            "currentStep": self.current_step,
            "direction": self.direction.value,
            "inFlight": self.in_flight,
            "errors": dict(self.errors),
            "formData": self.submission.form_values(),
        }
        if self.submission_id is not None:
            result["submissionId"] = self.submission_id
        if self.last_failure is not None:
            result["failure"] = self.last_failure
        return result


__all__ = [
    "AdvanceResult",
    "FormSession",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
]

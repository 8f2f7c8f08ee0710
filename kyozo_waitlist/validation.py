"""Per-step validation rules for the waitlist form.

Each form step has a small JSON Schema (Draft 7) describing what must be
present before the user may move on. A StepValidator evaluates the schema
against the submission's form values and translates jsonschema errors into
FieldError objects carrying the message shown next to the field.

The rules only check presence and email shape. Steps without textual input
(community selection) have an empty schema and always pass.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

import jsonschema
from jsonschema import Draft7Validator

from kyozo_waitlist.errors import FieldError
from kyozo_waitlist.submission import Submission
from kyozo_waitlist.types import FieldErrorCode, Step


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

_NON_BLANK: Dict[str, Any] = {"type": "string", "pattern": r"\S"}

STEP_SCHEMAS: Dict[Step, Dict[str, Any]] = {
    Step.IDENTITY: {
        "type": "object",
        "properties": {
            "firstName": _NON_BLANK,
            "lastName": _NON_BLANK,
            "email": {"allOf": [_NON_BLANK, {"type": "string", "pattern": EMAIL_PATTERN}]},
        },
        "required": ["firstName", "lastName", "email"],
    },
    Step.CONTACT: {
        "type": "object",
        "properties": {
            "phone": _NON_BLANK,
            # Picked from a list, so any non-empty value counts
            "location": {"type": "string", "minLength": 1},
        },
        "required": ["phone", "location"],
    },
    Step.CREATIVE_WORK: {
        "type": "object",
        "properties": {"creativeWork": _NON_BLANK},
        "required": ["creativeWork"],
    },
    Step.BETA_INTEREST: {
        "type": "object",
        "properties": {"betaTesting": {"enum": ["yes", "no"]}},
        "required": ["betaTesting"],
    },
    Step.RESONANCE: {
        "type": "object",
        "properties": {"resonanceLevel": {"enum": ["1", "2", "3", "4", "5"]}},
        "required": ["resonanceLevel"],
        "if": {
            "properties": {"resonanceLevel": {"type": "string", "minLength": 1}},
            "required": ["resonanceLevel"],
        },
        "then": {
            "properties": {"resonanceReasons": {"type": "array", "minItems": 1}},
        },
    },
    Step.COMMUNITY: {"type": "object"},
}

MESSAGES: Dict[Tuple[str, FieldErrorCode], str] = {
    ("firstName", FieldErrorCode.REQUIRED): "Please enter your given name",
    ("lastName", FieldErrorCode.REQUIRED): "Please enter your last name",
    ("email", FieldErrorCode.REQUIRED): "Please enter your email",
    ("email", FieldErrorCode.INVALID_FORMAT): "Please enter a valid email",
    ("phone", FieldErrorCode.REQUIRED): "Please enter your phone number",
    ("location", FieldErrorCode.REQUIRED): "Please select your location",
    ("creativeWork", FieldErrorCode.REQUIRED): "Please describe your creative work",
    ("betaTesting", FieldErrorCode.REQUIRED): "Please select an option",
    ("resonanceLevel", FieldErrorCode.REQUIRED): "Please rate your resonance with Kyozo",
    ("resonanceReasons", FieldErrorCode.REQUIRED): "Please select at least one reason for your rating",
}


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one step.

    Attributes:
        step: The step that was validated
        errors: At most one FieldError per field, in form order
    """
    step: Step
    errors: List[FieldError]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_mapping(self) -> Dict[str, str]:
        """Field name -> message; empty when the step may advance."""
        return {error.path: error.message for error in self.errors}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "step": int(self.step),
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


class StepValidator:
    """Validates the form values for a single step against its schema.

    Examples:
        >>> validator = StepValidator(Step.IDENTITY)
        >>> result = validator.validate(Submission(first_name="Sarah"))
        >>> sorted(result.as_mapping())
        ['email', 'lastName']
    """

    def __init__(self, step: Union[Step, int]) -> None:
        self.step = Step(step)
        self.schema = STEP_SCHEMAS[self.step]
        Draft7Validator.check_schema(self.schema)
        self.validator = Draft7Validator(self.schema)

    def validate(self, submission: Submission) -> ValidationResult:
        values = submission.form_values()
        by_field: Dict[str, FieldError] = {}

        for error in self.validator.iter_errors(values):
            field_error = self._translate_error(error)
            existing = by_field.get(field_error.path)
            # A blank field reports "required" even if its format check also failed
            if existing is None or (
                existing.code != FieldErrorCode.REQUIRED and field_error.code == FieldErrorCode.REQUIRED
            ):
                by_field[field_error.path] = field_error

        order = list(values)
        errors = sorted(by_field.values(), key=lambda e: order.index(e.path) if e.path in order else len(order))
        return ValidationResult(step=self.step, errors=errors)

    def _translate_error(self, error: jsonschema.ValidationError) -> FieldError:
        """Map a jsonschema error onto the field it concerns.

        Only the email shape check is a format error; every other failure
        means the field was left empty.
        """
        if error.validator == "required":
            path = error.message.split("'")[1] if "'" in error.message else ""
        else:
            path = str(error.path[0]) if error.path else ""

        if error.validator == "pattern" and error.validator_value == EMAIL_PATTERN:
            code = FieldErrorCode.INVALID_FORMAT
        else:
            code = FieldErrorCode.REQUIRED

        message = MESSAGES.get((path, code), f"Please check {path}")
        return FieldError(path=path, code=code, message=message)


_VALIDATORS: Dict[Step, StepValidator] = {step: StepValidator(step) for step in Step}


def validate_step(step: Union[Step, int], submission: Submission) -> Dict[str, str]:
    """Return field -> message for everything blocking ``step``.

    Pure function over the current state; an empty mapping means the step
    may advance.
    """
    return _VALIDATORS[Step(step)].validate(submission).as_mapping()


__all__ = [
    "EMAIL_PATTERN",
    "STEP_SCHEMAS",
    "MESSAGES",
    "ValidationResult",
    "StepValidator",
    "validate_step",
]

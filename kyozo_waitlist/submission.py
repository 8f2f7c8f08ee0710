"""Submission record and segment question sets.

A Submission is one person's waitlist entry. It starts empty when a form
session opens, is filled in field by field as the user moves through the
steps, and is frozen and handed to the submission pipeline on the final
step. Once stored it is a read-only historical record.

Stored documents use camelCase keys (``firstName``, ``roleTypes``, ...).
New records are written with ``betaTesting`` and tagged ``segments``;
``from_record`` also reads the older layouts already in the waitlist
collection (``productFeedbackSurvey``, bare segment tags) and tolerates
values the form would reject today.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Type

from dateutil import parser as date_parser

from kyozo_waitlist.types import Segment

logger = logging.getLogger(__name__)


QUESTION_KEYS = ("q1", "q2", "q3", "q4", "q5")


@dataclass(frozen=True)
class SegmentAnswers:
    """Answers to one segment's fixed extended question set.

    Each subclass is tagged with its segment and carries exactly the five
    questions of that segment's schema.
    """
    segment: ClassVar[Segment]

    q1: str = ""
    q2: str = ""
    q3: str = ""
    q4: str = ""
    q5: str = ""

    def answers(self) -> Dict[str, str]:
        return {key: getattr(self, key) for key in QUESTION_KEYS}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"segment": self.segment.value, "answers": self.answers()}


@dataclass(frozen=True)
class ArtistAnswers(SegmentAnswers):
    segment: ClassVar[Segment] = Segment.ARTIST


@dataclass(frozen=True)
class CommunityAnswers(SegmentAnswers):
    segment: ClassVar[Segment] = Segment.COMMUNITY


SEGMENT_VARIANTS: Dict[Segment, Type[SegmentAnswers]] = {
    Segment.ARTIST: ArtistAnswers,
    Segment.COMMUNITY: CommunityAnswers,
}


def segment_answers_from_dict(data: Dict[str, Any]) -> SegmentAnswers:
    """Build the segment variant named by ``data["segment"]``.

    Raises:
        ValueError: If the segment tag is unknown
    """
    variant = SEGMENT_VARIANTS[Segment(data["segment"])]
    answers = data.get("answers") or {}
    return variant(**{key: str(answers.get(key, "")) for key in QUESTION_KEYS})


# Stored field name -> Submission attribute
FIELD_NAMES: Dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "location": "location",
    "roleTypes": "role_types",
    "creativeWork": "creative_work",
    "betaTesting": "beta_testing",
    "resonanceLevel": "resonance_level",
    "resonanceReasons": "resonance_reasons",
    "communitySelections": "community_selections",
}

LIST_FIELDS = frozenset({"role_types", "resonance_reasons", "community_selections"})


def _coerce_beta_testing(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("yes", "true"):
        return True
    if text in ("no", "false"):
        return False
    raise ValueError(f"Invalid beta testing answer: {value!r}")


def _coerce_resonance_level(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        level = int(value)
    except TypeError:
        raise ValueError(f"Invalid resonance level: {value!r}") from None
    if not 1 <= level <= 5:
        raise ValueError(f"Resonance level must be between 1 and 5, got {level}")
    return level


def _unique(values: Any) -> List[str]:
    result: List[str] = []
    for value in values or []:
        text = str(value)
        if text not in result:
            result.append(text)
    return result


@dataclass
class Submission:
    """One waitlist entry.

    Attributes:
        first_name: Given name
        last_name: Family name
        email: Email address
        phone: Phone number
        location: Selected city
        role_types: Selected role-type tags, in selection order
        creative_work: Free-text description of the person's creative work
        beta_testing: Yes/no beta-testing interest, None until answered
        resonance_level: Self-reported enthusiasm from 1 to 5
        resonance_reasons: Reasons for the resonance rating
        community_selections: Beta communities the person wants to join
        segments: Extended question sets, one per segment
        user_id: Identity token, assigned once at submission time
        id: Store-assigned document id
        timestamp: Store-assigned creation time

    Examples:
        >>> sub = Submission(first_name="Sarah", last_name="Chen")
        >>> sub.set_field("resonanceLevel", "5")
        >>> sub.resonance_level
        5
    """

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    role_types: List[str] = field(default_factory=list)
    creative_work: str = ""
    beta_testing: Optional[bool] = None
    resonance_level: Optional[int] = None
    resonance_reasons: List[str] = field(default_factory=list)
    community_selections: List[str] = field(default_factory=list)
    segments: List[SegmentAnswers] = field(default_factory=list)
    user_id: Optional[str] = None
    id: Optional[str] = None
    timestamp: Optional[datetime] = None

    def set_field(self, name: str, value: Any) -> None:
        """Set a field by its stored or attribute name, coercing the value.

        Raises:
            KeyError: If the field name is unknown or not user-editable
            ValueError: If the value cannot be coerced
        """
        attr = FIELD_NAMES.get(name, name)
        if attr not in FIELD_NAMES.values():
            raise KeyError(name)
        if attr == "beta_testing":
            value = _coerce_beta_testing(value)
        elif attr == "resonance_level":
            value = _coerce_resonance_level(value)
        elif attr in LIST_FIELDS:
            value = _unique(value)
        else:
            value = "" if value is None else str(value)
        setattr(self, attr, value)

    def toggle(self, name: str, tag: str) -> List[str]:
        """Add ``tag`` to a multi-select field, or remove it if present."""
        attr = FIELD_NAMES.get(name, name)
        if attr not in LIST_FIELDS:
            raise KeyError(name)
        current: List[str] = list(getattr(self, attr))
        if tag in current:
            current.remove(tag)
        else:
            current.append(tag)
        setattr(self, attr, current)
        return current

    def assign_identity(self, user_id: str) -> None:
        """Attach the identity token. It can be assigned only once."""
        if self.user_id is not None and self.user_id != user_id:
            raise ValueError("Submission identity is already assigned")
        self.user_id = user_id

    def freeze(self) -> "Submission":
        """Return an independent copy to hand to the pipeline."""
        return copy.deepcopy(self)

    def has_segment(self, segment: Segment) -> bool:
        return any(answers.segment == segment for answers in self.segments)

    def form_values(self) -> Dict[str, Any]:
        """Field values keyed by stored name, as the form shows them."""
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "roleTypes": list(self.role_types),
            "creativeWork": self.creative_work,
            "betaTesting": "" if self.beta_testing is None else ("yes" if self.beta_testing else "no"),
            "resonanceLevel": "" if self.resonance_level is None else str(self.resonance_level),
            "resonanceReasons": list(self.resonance_reasons),
            "communitySelections": list(self.community_selections),
        }

    def to_record(self) -> Dict[str, Any]:
        """Document written to the store (without id and timestamp)."""
        record = self.form_values()
        record["userId"] = self.user_id
        record["segments"] = [answers.to_dict() for answers in self.segments]
        return record

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result = self.to_record()
        result["id"] = self.id
        result["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        """Create a Submission from a stored document or API payload."""
        submission = cls()
        for name in FIELD_NAMES:
            if name in data:
                submission.set_field(name, data[name])
        if "betaTesting" not in data and data.get("productFeedbackSurvey"):
            submission.set_field("betaTesting", data["productFeedbackSurvey"])
        submission.segments = []
        for entry in data.get("segments") or []:
            if isinstance(entry, str):
                # Older records keep a bare tag plus "artistQuestions" / "communityQuestions"
                entry = {"segment": entry, "answers": data.get(f"{entry}Questions")}
            submission.segments.append(segment_answers_from_dict(entry))
        submission.user_id = data.get("userId")
        submission.id = data.get("id")
        ts = data.get("timestamp")
        if isinstance(ts, str) and ts:
            ts = date_parser.isoparse(ts)
        submission.timestamp = ts if isinstance(ts, datetime) else None
        return submission

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Submission":
        """Create a Submission from a stored document, tolerating bad values.

        Records written by earlier versions of the form may hold answers the
        current coercion rejects (a free-text ``productFeedbackSurvey``, a
        ``resonanceLevel`` of ``"5/5"``, an unknown segment tag). Such values
        are logged and left unset so one odd record never hides the rest.
        """
        record_id = data.get("id")
        clean: Dict[str, Any] = {}
        for name in FIELD_NAMES:
            if name in data:
                try:
                    cls().set_field(name, data[name])
                except (TypeError, ValueError):
                    logger.warning("Record %s: ignoring unreadable %s=%r", record_id, name, data[name])
                    continue
                clean[name] = data[name]
        legacy_beta = data.get("productFeedbackSurvey")
        if "betaTesting" not in data and legacy_beta:
            try:
                _coerce_beta_testing(legacy_beta)
            except ValueError:
                logger.warning("Record %s: ignoring unreadable productFeedbackSurvey=%r", record_id, legacy_beta)
            else:
                clean["productFeedbackSurvey"] = legacy_beta

        segments = []
        for entry in data.get("segments") or []:
            if isinstance(entry, str):
                entry = {"segment": entry, "answers": data.get(f"{entry}Questions")}
            try:
                segment_answers_from_dict(entry)
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Record %s: ignoring unknown segment %r", record_id, entry)
                continue
            segments.append(entry)
        clean["segments"] = segments

        for key in ("userId", "id", "timestamp"):
            if key in data:
                clean[key] = data[key]
        ts = clean.get("timestamp")
        if isinstance(ts, str):
            try:
                date_parser.isoparse(ts)
            except ValueError:
                logger.warning("Record %s: ignoring unreadable timestamp %r", record_id, ts)
                clean["timestamp"] = None
        return cls.from_dict(clean)


__all__ = [
    "QUESTION_KEYS",
    "SegmentAnswers",
    "ArtistAnswers",
    "CommunityAnswers",
    "SEGMENT_VARIANTS",
    "segment_answers_from_dict",
    "FIELD_NAMES",
    "Submission",
]

"""CSV export of stored submissions for the admin view.

Column order follows the spreadsheet the team already works from. List
fields are joined with "; " and segment answers fill the Artist/Community
question columns.
"""

import csv
import io
from datetime import date
from typing import Iterable, List

from kyozo_waitlist.submission import QUESTION_KEYS, Submission
from kyozo_waitlist.types import Segment


HEADER: List[str] = [
    "Timestamp",
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Location",
    "Role Types",
    "Creative Work",
    "Segments",
    "Artist Q1", "Artist Q2", "Artist Q3", "Artist Q4", "Artist Q5",
    "Community Q1", "Community Q2", "Community Q3", "Community Q4", "Community Q5",
    "Product Feedback Survey",
    "Resonance Level",
    "Resonance Reasons",
    "Beta Communities",
]


def _segment_columns(submission: Submission, segment: Segment) -> List[str]:
    for answers in submission.segments:
        if answers.segment == segment:
            return [getattr(answers, key) for key in QUESTION_KEYS]
    return [""] * len(QUESTION_KEYS)


def export_row(submission: Submission) -> List[str]:
    values = submission.form_values()
    return [
        submission.timestamp.isoformat() if submission.timestamp else "",
        values["firstName"],
        values["lastName"],
        values["email"],
        values["phone"],
        values["location"],
        "; ".join(values["roleTypes"]),
        values["creativeWork"],
        "; ".join(answers.segment.value for answers in submission.segments),
        *_segment_columns(submission, Segment.ARTIST),
        *_segment_columns(submission, Segment.COMMUNITY),
        values["betaTesting"],
        values["resonanceLevel"],
        "; ".join(values["resonanceReasons"]),
        "; ".join(values["communitySelections"]),
    ]


def build_export_csv(submissions: Iterable[Submission]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for submission in submissions:
        writer.writerow(export_row(submission))
    return buf.getvalue()


def export_filename(today: date) -> str:
    return f"kyozo-waitlist-{today.isoformat()}.csv"


__all__ = ["HEADER", "export_row", "build_export_csv", "export_filename"]

"""Submission store adapters.

The store owns identity and creation time of every record: ``create``
assigns both and returns the generated id, ``list`` returns submissions
newest first, ``delete`` removes one by id.

FirestoreSubmissionStore is the production adapter (firebase-admin). The
Firestore client is synchronous, so each call runs in a worker thread to
keep the event loop free. InMemorySubmissionStore backs tests and local runs.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

import firebase_admin
from firebase_admin import credentials, firestore

from kyozo_waitlist.config import Settings
from kyozo_waitlist.errors import StoreError, SubmissionNotFoundError
from kyozo_waitlist.submission import Submission

logger = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    """Persistence boundary for submissions."""

    async def create(self, submission: Submission) -> str:
        ...

    async def list(self) -> List[Submission]:
        ...

    async def delete(self, submission_id: str) -> None:
        ...


class InMemorySubmissionStore:
    """Process-local store with the same contract as the Firestore adapter.

    Ids are random and timestamps strictly increase, so ``list`` ordering is
    stable even for writes within the same clock tick.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Tuple[Dict[str, Any], datetime]] = {}
        self._last_ts: Optional[datetime] = None
        self.write_count = 0

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + timedelta(microseconds=1)
        self._last_ts = now
        return now

    async def create(self, submission: Submission) -> str:
        submission_id = uuid.uuid4().hex[:20]
        self._records[submission_id] = (submission.to_record(), self._next_timestamp())
        self.write_count += 1
        logger.info("Stored submission %s", submission_id)
        return submission_id

    async def get(self, submission_id: str) -> Submission:
        if submission_id not in self._records:
            raise SubmissionNotFoundError(submission_id)
        record, ts = self._records[submission_id]
        return Submission.from_record({**record, "id": submission_id, "timestamp": ts})

    async def list(self) -> List[Submission]:
        ordered = sorted(self._records.items(), key=lambda item: item[1][1], reverse=True)
        return [
            Submission.from_record({**record, "id": submission_id, "timestamp": ts})
            for submission_id, (record, ts) in ordered
        ]

    async def delete(self, submission_id: str) -> None:
        if submission_id not in self._records:
            raise SubmissionNotFoundError(submission_id)
        del self._records[submission_id]
        logger.info("Deleted submission %s", submission_id)


def init_firestore(settings: Settings) -> Any:
    """Initialize the default Firebase app once and return a Firestore client.

    Credentials come from the service-account fields in settings.
    """
    try:
        firebase_admin.get_app()
    except ValueError:
        cred = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": settings.private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        options = {"projectId": settings.firebase_project_id}
        if settings.firebase_storage_bucket:
            options["storageBucket"] = settings.firebase_storage_bucket
        firebase_admin.initialize_app(cred, options)
        logger.info("Firebase initialized for project %s", settings.firebase_project_id)
    return firestore.client()


class FirestoreSubmissionStore:
    """Submission store backed by a Firestore collection."""

    def __init__(self, client: Any, collection: str = "waitlist") -> None:
        self._client = client
        self._collection_name = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreSubmissionStore":
        return cls(init_firestore(settings), collection=settings.waitlist_collection)

    def _collection(self) -> Any:
        return self._client.collection(self._collection_name)

    def _create_sync(self, record: Dict[str, Any]) -> str:
        _, doc_ref = self._collection().add({**record, "timestamp": firestore.SERVER_TIMESTAMP})
        return doc_ref.id

    def _list_sync(self) -> List[Submission]:
        query = self._collection().order_by("timestamp", direction=firestore.Query.DESCENDING)
        submissions = []
        for doc in query.stream():
            data = doc.to_dict() or {}
            data["id"] = doc.id
            submissions.append(Submission.from_record(data))
        return submissions

    def _delete_sync(self, submission_id: str) -> None:
        doc_ref = self._collection().document(submission_id)
        if not doc_ref.get().exists:
            raise SubmissionNotFoundError(submission_id)
        doc_ref.delete()

    async def create(self, submission: Submission) -> str:
        try:
            submission_id = await asyncio.to_thread(self._create_sync, submission.to_record())
        except Exception as exc:
            raise StoreError(f"Error saving waitlist submission: {exc}") from exc
        logger.info("Stored submission %s", submission_id)
        return submission_id

    async def list(self) -> List[Submission]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except Exception as exc:
            raise StoreError(f"Error getting waitlist submissions: {exc}") from exc

    async def delete(self, submission_id: str) -> None:
        try:
            await asyncio.to_thread(self._delete_sync, submission_id)
        except SubmissionNotFoundError:
            raise
        except Exception as exc:
            raise StoreError(f"Error deleting submission {submission_id}: {exc}") from exc
        logger.info("Deleted submission %s", submission_id)


__all__ = [
    "SubmissionStore",
    "InMemorySubmissionStore",
    "FirestoreSubmissionStore",
    "init_firestore",
]

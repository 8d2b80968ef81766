# dashboard aggregation: pending requests, upcoming sessions, patient count, recent messages
# every fetcher takes the practitioner id explicitly, results are joined in memory

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from therapist_dashboard.config import settings
from therapist_dashboard.models.dashboard import (
    DashboardState,
    DashboardView,
    PendingRequest,
    RecentMessage,
    UpcomingAppointment,
)
from therapist_dashboard.services.query import Document, DocumentStore, collection

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = ["scheduled", "accepted"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    """naive datetimes are taken to be utc"""
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _text(doc: Document, key: str) -> str:
    # stored nulls render as empty strings
    return doc.get(key) or ""


def _to_instant(value: Any, fallback: datetime) -> datetime:
    """convert a store timestamp to an aware datetime"""
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, str) and value:
        return _as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    # bson Timestamp and similar store-native types
    if hasattr(value, "as_datetime"):
        return _to_instant(value.as_datetime(), fallback)
    return _as_utc(fallback)


# fetchers

async def fetch_pending_requests(store: DocumentStore, practitioner_id: str) -> list[PendingRequest]:
    """newest pending requests for the practitioner, in store order"""
    query = (
        collection("appointments")
        .where("therapist_id", "==", practitioner_id)
        .where("status", "==", "pending")
        .order_by("created_at", "desc")
        .limit(settings.PENDING_REQUEST_LIMIT)
    )
    docs = await store.execute(query)
    return [
        PendingRequest(
            id=doc.id,
            patient_name=_text(doc, "patient_name"),
            date=_text(doc, "date"),
            time=_text(doc, "time"),
            created_at=doc.get("created_at"),
        )
        for doc in docs
    ]


async def fetch_upcoming_appointments(
    store: DocumentStore, practitioner_id: str, today: date
) -> list[UpcomingAppointment]:
    """confirmed sessions from today on, in (date, time) order"""
    limit = settings.UPCOMING_APPOINTMENT_LIMIT
    query = (
        collection("appointments")
        .where("therapist_id", "==", practitioner_id)
        .where("date", ">=", today.isoformat())
        .where("status", "in", CONFIRMED_STATUSES)
    )

    if store.supports_compound_order:
        docs = await store.execute(query.order_by("date").order_by("time").limit(limit))
    else:
        # iso dates and zero-padded times sort correctly as strings
        docs = await store.execute(query)
        docs = sorted(docs, key=lambda d: (d.get("date") or "", d.get("time") or ""))[:limit]

    return [
        UpcomingAppointment(
            id=doc.id,
            patient_name=_text(doc, "patient_name"),
            date=_text(doc, "date"),
            time=_text(doc, "time"),
        )
        for doc in docs
    ]


async def count_patients(store: DocumentStore, practitioner_id: str) -> int:
    """distinct patients across all of the practitioner's appointments, any status"""
    docs = await store.execute(
        collection("appointments").where("therapist_id", "==", practitioner_id)
    )
    patient_ids = {doc.get("patient_id") for doc in docs}
    patient_ids.discard(None)
    patient_ids.discard("")
    return len(patient_ids)


def _is_participant(chat: Document, practitioner_id: str) -> bool:
    return practitioner_id in set(chat.get("participants") or [])


async def _fetch_chat_messages(store: DocumentStore, chat_id: str) -> list[Document]:
    query = (
        collection("chats", chat_id, "messages")
        .order_by("timestamp", "desc")
        .limit(settings.MESSAGES_PER_CONVERSATION)
    )
    return await store.execute(query)


async def fetch_recent_messages(
    store: DocumentStore, practitioner_id: str, now: Optional[datetime] = None
) -> list[RecentMessage]:
    """latest messages addressed to the practitioner across their conversations.

    conversations are selected by membership in their participants list, each
    one contributes its newest messages, and the merged set is sorted globally
    before truncation.
    """
    now = _as_utc(now or _utcnow())
    chats = await store.execute(
        collection("chats")
        .where("participants", "array-contains", practitioner_id)
        .limit(settings.CONVERSATION_SCAN_LIMIT)
    )
    chat_ids = [chat.id for chat in chats if _is_participant(chat, practitioner_id)]

    # per-chat fetches are independent, all must finish before the merge
    batches = await asyncio.gather(*(_fetch_chat_messages(store, cid) for cid in chat_ids))

    messages = []
    for batch in batches:
        for doc in batch:
            if doc.get("receiver_id") != practitioner_id:
                continue
            messages.append(RecentMessage(
                id=doc.id,
                sender_name=_text(doc, "sender_name"),
                sender_id=doc.get("sender_id"),
                text=_text(doc, "text"),
                timestamp=_to_instant(doc.get("timestamp"), now),
                read=bool(doc.get("read", False)),
            ))

    messages.sort(key=lambda m: m.timestamp, reverse=True)
    return messages[:settings.RECENT_MESSAGE_LIMIT]


# orchestration

async def build_dashboard_view(
    store: DocumentStore, practitioner_id: str, now: Optional[datetime] = None
) -> DashboardView:
    """run all four fetchers for one practitioner. the first failing fetch propagates"""
    now = _as_utc(now or _utcnow())
    # today is fixed once per invocation
    today = now.astimezone(timezone.utc).date()

    pending = await fetch_pending_requests(store, practitioner_id)
    upcoming = await fetch_upcoming_appointments(store, practitioner_id, today)
    patient_count = await count_patients(store, practitioner_id)
    recent = await fetch_recent_messages(store, practitioner_id, now)

    return DashboardView(
        pending_requests=pending,
        upcoming_appointments=upcoming,
        patient_count=patient_count,
        recent_messages=recent,
    )


class DashboardAggregator:
    """tracks the current practitioner identity and the latest dashboard state.

    refresh() is called whenever the identity becomes known or changes. a call
    for the identity already in flight joins that invocation, and a result
    computed for an identity that has since changed is dropped instead of
    overwriting the newer state.
    """

    def __init__(self, store: DocumentStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or _utcnow
        self._identity: Optional[str] = None
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self.state = DashboardState()

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    async def refresh(self, practitioner_id: Optional[str]) -> DashboardState:
        if (
            practitioner_id
            and practitioner_id == self._identity
            and self._inflight is not None
            and not self._inflight.done()
        ):
            return await asyncio.shield(self._inflight)

        self._identity = practitioner_id
        self._generation += 1
        self._inflight = None

        if not practitioner_id:
            # not ready yet, no queries are issued
            self.state = DashboardState()
            return self.state

        self.state = DashboardState(ready=True, loading=True)
        self._inflight = asyncio.ensure_future(self._run(practitioner_id, self._generation))
        return await asyncio.shield(self._inflight)

    async def _run(self, practitioner_id: str, generation: int) -> DashboardState:
        try:
            view = await build_dashboard_view(self.store, practitioner_id, self._clock())
        except Exception:
            # any failure ends the load, partial results are discarded
            logger.exception(f"Error fetching dashboard data for {practitioner_id}")
            return self._commit(generation, DashboardState(ready=True, error=True))

        return self._commit(generation, DashboardState(view=view, ready=True))

    def _commit(self, generation: int, state: DashboardState) -> DashboardState:
        if generation != self._generation:
            logger.warning("Discarding stale dashboard result after identity change")
            # the caller asked for an identity that is no longer current
            return DashboardState()
        self.state = state
        return state

"""Message request workflow and chat derivation.

Requests move through a small state machine driven only by the receiver::

    pending --accept--> accepted   (terminal, opens a chat thread)
    pending --reject--> rejected   (terminal)
    pending --hold----> on_hold
    on_hold --accept--> accepted
    on_hold --reject--> rejected

Everything the messages page shows (incoming, outgoing, on-hold, chat
roster and conversation) is derived from the flat list of rows where the
viewer is sender or receiver. Nothing is patched in place: after a write
the caller reloads the list and derives again.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from campus_board.core.errors import (
    InvalidInputError,
    InvalidTransitionError,
    PermissionDeniedError,
    StoreError,
)
from campus_board.db.time import utcnow
from campus_board.models.message import MESSAGE_STATUSES
from campus_board.schemas.message import MessageRecord, MessageStatus
from campus_board.store.base import MESSAGES, RecordStore, desc

logger = logging.getLogger(__name__)

PENDING: MessageStatus = "pending"
ACCEPTED: MessageStatus = "accepted"
REJECTED: MessageStatus = "rejected"
ON_HOLD: MessageStatus = "on_hold"

DEFAULT_MESSAGE_TYPE = "메시지"
CHAT_MESSAGE_TYPE = "채팅"

TRANSITIONS: dict[MessageStatus, frozenset[MessageStatus]] = {
    PENDING: frozenset({ACCEPTED, REJECTED, ON_HOLD}),
    ON_HOLD: frozenset({ACCEPTED, REJECTED}),
    ACCEPTED: frozenset(),
    REJECTED: frozenset(),
}


def can_transition(current: MessageStatus, target: MessageStatus) -> bool:
    """Return True when ``target`` is reachable from ``current`` in one step."""
    return target in TRANSITIONS.get(current, frozenset())


def normalize_status(value: Any) -> MessageStatus:
    """Coerce an unknown status to ``pending``."""
    return value if value in MESSAGE_STATUSES else PENDING


def normalize_messages(rows: Iterable[Mapping[str, Any]]) -> list[MessageRecord]:
    """Turn raw store rows into records, dropping rows without routing ids."""
    records: list[MessageRecord] = []
    for row in rows:
        if not row.get("id") or not row.get("sender_id") or not row.get("receiver_id"):
            continue
        msg_type = row.get("type")
        content = row.get("content")
        records.append(
            MessageRecord(
                id=str(row["id"]),
                sender_id=str(row["sender_id"]),
                receiver_id=str(row["receiver_id"]),
                type=msg_type if isinstance(msg_type, str) else DEFAULT_MESSAGE_TYPE,
                content=content if isinstance(content, str) else "",
                status=normalize_status(row.get("status")),
                created_at=row.get("created_at") or utcnow(),
            )
        )
    return records


@dataclass(frozen=True)
class MessagePartitions:
    """The four derived views of a viewer's messages."""

    incoming: list[MessageRecord] = field(default_factory=list)
    outgoing: list[MessageRecord] = field(default_factory=list)
    on_hold: list[MessageRecord] = field(default_factory=list)
    chat: list[MessageRecord] = field(default_factory=list)


def partition_messages(messages: Iterable[MessageRecord], me: str) -> MessagePartitions:
    """Split messages into incoming-pending, outgoing, on-hold and chat-eligible.

    Only outgoing and chat may share rows (accepted messages I sent).
    """
    parts = MessagePartitions()
    for msg in messages:
        if msg.receiver_id == me and msg.status == PENDING:
            parts.incoming.append(msg)
        if msg.sender_id == me:
            parts.outgoing.append(msg)
        if msg.receiver_id == me and msg.status == ON_HOLD:
            parts.on_hold.append(msg)
        if msg.status == ACCEPTED and me in (msg.sender_id, msg.receiver_id):
            parts.chat.append(msg)
    return parts


def chat_partner_ids(messages: Iterable[MessageRecord], me: str) -> list[str]:
    """Return distinct chat partners in first-seen order."""
    partners: list[str] = []
    seen: set[str] = set()
    for msg in messages:
        if msg.status != ACCEPTED or me not in (msg.sender_id, msg.receiver_id):
            continue
        partner = msg.receiver_id if msg.sender_id == me else msg.sender_id
        if partner not in seen:
            seen.add(partner)
            partners.append(partner)
    return partners


def conversation(messages: Iterable[MessageRecord], me: str, partner: str) -> list[MessageRecord]:
    """Return the accepted messages between ``me`` and ``partner``, oldest first."""
    thread = [
        msg
        for msg in messages
        if msg.status == ACCEPTED
        and {msg.sender_id, msg.receiver_id} == {me, partner}
        and msg.sender_id != msg.receiver_id
    ]
    return sorted(thread, key=lambda msg: msg.created_at)


class MessageService:
    """Writes issued by one principal against the messages table."""

    def __init__(self, store: RecordStore, me: str) -> None:
        """Initialize the service for the principal ``me``."""
        self.store = store
        self.me = me

    async def load(self) -> list[MessageRecord]:
        """Return every message the principal sent or received, newest first."""
        rows = await self.store.select(
            MESSAGES,
            columns=["id", "sender_id", "receiver_id", "type", "content", "status", "created_at"],
            any_eq={"sender_id": self.me, "receiver_id": self.me},
            order_by=[desc("created_at")],
        )
        return normalize_messages(rows)

    async def send_request(
        self,
        receiver_ids: Sequence[str],
        msg_type: str,
        content: str,
    ) -> list[MessageRecord]:
        """Send one pending request per receiver in a single batch insert."""
        receivers = list(dict.fromkeys(rid for rid in receiver_ids if rid))
        body = content.strip()
        if not receivers or not msg_type.strip() or not body:
            raise InvalidInputError("Select at least one student and fill in the type and content")
        if self.me in receivers:
            raise InvalidInputError("You cannot send a message to yourself")

        rows = await self.store.insert(
            MESSAGES,
            [
                {
                    "sender_id": self.me,
                    "receiver_id": receiver,
                    "type": msg_type.strip(),
                    "content": body,
                    "status": PENDING,
                }
                for receiver in receivers
            ],
        )
        logger.info("Sent %d message request(s) from %s", len(rows), self.me)
        return normalize_messages(rows)

    async def update_status(self, message: MessageRecord, target: MessageStatus) -> MessageRecord:
        """Move ``message`` to ``target`` as its receiver.

        The transition is checked against the status seen at the last load.
        The store update is filtered on that status and on the receiver, so
        it matches nothing once the message has moved on or belongs to
        somebody else.
        """
        if message.receiver_id != self.me:
            raise PermissionDeniedError("Only the receiver can answer a message request")
        if not can_transition(message.status, target):
            raise InvalidTransitionError(
                f"Cannot move a message from {message.status} to {target}"
            )

        rows = await self.store.update(
            MESSAGES,
            {"status": target},
            eq={"id": message.id, "receiver_id": self.me, "status": message.status},
        )
        if not rows:
            raise StoreError("Message not found, not addressed to you or already answered")
        logger.info("Message %s: %s -> %s", message.id, message.status, target)
        return normalize_messages(rows)[0]

    async def accept(self, message: MessageRecord) -> str:
        """Accept a request and return the sender, the new chat partner."""
        await self.update_status(message, ACCEPTED)
        return message.sender_id

    async def reject(self, message: MessageRecord, *, confirmed: bool) -> None:
        """Reject a request once the receiver has confirmed."""
        if not confirmed:
            raise InvalidInputError("Rejecting a message must be confirmed")
        await self.update_status(message, REJECTED)

    async def hold(self, message: MessageRecord) -> None:
        """Defer the decision on a pending request."""
        await self.update_status(message, ON_HOLD)

    async def send_chat(self, partner_id: str, content: str) -> MessageRecord:
        """Continue an accepted thread; chat lines are written as accepted."""
        body = content.strip()
        if not partner_id or not body:
            raise InvalidInputError("Choose a chat partner and enter a message")
        if partner_id == self.me:
            raise InvalidInputError("You cannot chat with yourself")

        rows = await self.store.insert(
            MESSAGES,
            {
                "sender_id": self.me,
                "receiver_id": partner_id,
                "type": CHAT_MESSAGE_TYPE,
                "content": body,
                "status": ACCEPTED,
            },
        )
        return normalize_messages(rows)[0]

"""Messages page controller."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from campus_board.core.errors import InvalidInputError, NotFoundError
from campus_board.schemas.common import Section
from campus_board.schemas.message import MessageRecord, StudentOption
from campus_board.schemas.profile import ProfileRecord
from campus_board.schemas.views import MessagesView
from campus_board.store.base import PROFILES, RecordStore, asc

from .messages import MessageService, chat_partner_ids, conversation, partition_messages
from .refresh import MutationResult, ViewController, gathered_error

logger = logging.getLogger(__name__)


async def list_students(store: RecordStore, me: str) -> list[StudentOption]:
    """Return every other student as a recipient option, ordered by name."""
    rows = await store.select(PROFILES, columns=["id", "name", "grade"], order_by=[asc("name")])
    return [StudentOption.model_validate(row) for row in rows if row.get("id") != me]


def students_in_grade(students: Sequence[StudentOption], grade: int | None) -> list[StudentOption]:
    """Narrow the recipient list to one grade; ``None`` keeps everyone."""
    if grade is None:
        return list(students)
    return [student for student in students if student.grade == grade]


async def load_messages_page(
    store: RecordStore,
    me: str,
    *,
    selected_partner: str | None = None,
) -> MessagesView:
    """Fetch students and messages together and derive every partition.

    A failed fetch only degrades its own section: without students the
    partitions still render, without messages the page has no partitions.
    """
    students, messages = await asyncio.gather(
        list_students(store, me),
        MessageService(store, me).load(),
        return_exceptions=True,
    )

    students_error = gathered_error(students)
    if students_error is not None:
        logger.warning("Students could not be loaded for %s: %s", me, students_error)
        students = []
    messages_error = gathered_error(messages)
    if messages_error is not None:
        logger.warning("Messages could not be loaded for %s: %s", me, messages_error)
        messages = []

    parts = partition_messages(messages, me)
    return MessagesView(
        students=Section[list[StudentOption]](data=students, error=students_error),
        names={student.id: student.name for student in students},
        messages=Section[list[MessageRecord]](data=messages, error=messages_error),
        incoming=parts.incoming,
        outgoing=parts.outgoing,
        on_hold=parts.on_hold,
        chat_partners=chat_partner_ids(parts.chat, me),
        selected_partner=selected_partner,
        conversation=conversation(parts.chat, me, selected_partner) if selected_partner else [],
    )


class MessagesController(ViewController[MessagesView]):
    """Incoming, outgoing and on-hold requests plus chat threads."""

    def __init__(self, store: RecordStore, profile: ProfileRecord) -> None:
        """Initialize the page for the signed-in ``profile``."""
        super().__init__()
        self.store = store
        self.profile = profile
        self.service = MessageService(store, profile.id)
        self.selected_partner: str | None = None

    async def _load(self) -> MessagesView:
        return await load_messages_page(self.store, self.profile.id, selected_partner=self.selected_partner)

    def find_message(self, message_id: str) -> MessageRecord:
        """Return a loaded message by id."""
        if self.state is not None:
            for msg in self.state.messages.data:
                if msg.id == message_id:
                    return msg
        raise NotFoundError("Message not found")

    async def select_partner(self, partner_id: str | None) -> MessagesView | None:
        """Open the conversation with ``partner_id``."""
        self.selected_partner = partner_id
        return await self.reload()

    async def send_request(
        self,
        receiver_ids: Sequence[str],
        msg_type: str,
        content: str,
    ) -> MutationResult[list[MessageRecord]]:
        """Send a request to each selected student."""
        return await self.mutate(lambda: self.service.send_request(receiver_ids, msg_type, content))

    async def accept(self, message_id: str) -> MutationResult[str]:
        """Accept a request and open the chat with its sender."""

        async def _accept() -> str:
            partner = await self.service.accept(self.find_message(message_id))
            self.selected_partner = partner
            return partner

        return await self.mutate(_accept)

    async def reject(self, message_id: str, *, confirmed: bool) -> MutationResult[None]:
        """Reject a request after confirmation."""
        return await self.mutate(
            lambda: self.service.reject(self.find_message(message_id), confirmed=confirmed)
        )

    async def hold(self, message_id: str) -> MutationResult[None]:
        """Put a request on hold."""
        return await self.mutate(lambda: self.service.hold(self.find_message(message_id)))

    async def send_chat(self, partner_id: str, content: str) -> MutationResult[MessageRecord]:
        """Write to an existing chat partner."""

        async def _send() -> MessageRecord:
            if self.state is None or partner_id not in self.state.chat_partners:
                raise InvalidInputError("There is no accepted conversation with this student")
            self.selected_partner = partner_id
            return await self.service.send_chat(partner_id, content)

        return await self.mutate(_send)

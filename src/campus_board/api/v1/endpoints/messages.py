"""Message request and chat endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from campus_board.schemas.message import ChatCreate, MessageCreate, StudentOption
from campus_board.schemas.views import MessagesView
from campus_board.services.messages import DEFAULT_MESSAGE_TYPE
from campus_board.services.messages_page import MessagesController, students_in_grade

from ..dependencies import CurrentProfileDep, StoreDep, loaded_view, raise_for_result

router = APIRouter(prefix="/messages", tags=["messages"])


async def _open_messages(
    store: StoreDep,
    profile: CurrentProfileDep,
    partner_id: str | None = None,
) -> MessagesController:
    controller = MessagesController(store, profile)
    controller.selected_partner = partner_id
    view = await controller.reload()
    if view is not None and view.messages.error is not None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=view.messages.error)
    return controller


@router.get("/", response_model=MessagesView)
async def get_messages(store: StoreDep, profile: CurrentProfileDep) -> MessagesView:
    """Get incoming, outgoing and on-hold requests and the chat roster."""
    return loaded_view(await _open_messages(store, profile))


@router.get("/students", response_model=list[StudentOption])
async def list_recipients(
    store: StoreDep,
    profile: CurrentProfileDep,
    grade: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> list[StudentOption]:
    """List the students a request can be sent to, optionally by grade."""
    students = loaded_view(await _open_messages(store, profile)).students
    if students.error is not None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=students.error)
    return students_in_grade(students.data, grade)


@router.post("/", response_model=MessagesView, status_code=status.HTTP_201_CREATED)
async def send_request(
    body: MessageCreate,
    store: StoreDep,
    profile: CurrentProfileDep,
) -> MessagesView:
    """Send a message request to one or more students."""
    controller = await _open_messages(store, profile)
    result = await controller.send_request(body.receiver_ids, body.type or DEFAULT_MESSAGE_TYPE, body.content)
    raise_for_result(result)
    return loaded_view(controller)


@router.post("/{message_id}/accept", response_model=MessagesView)
async def accept_request(message_id: str, store: StoreDep, profile: CurrentProfileDep) -> MessagesView:
    """Accept a request; the returned view has the sender's chat selected."""
    controller = await _open_messages(store, profile)
    raise_for_result(await controller.accept(message_id))
    return loaded_view(controller)


@router.post("/{message_id}/reject", response_model=MessagesView)
async def reject_request(
    message_id: str,
    store: StoreDep,
    profile: CurrentProfileDep,
    confirmed: bool = False,
) -> MessagesView:
    """Reject a request; the caller must pass ``confirmed=true``."""
    controller = await _open_messages(store, profile)
    raise_for_result(await controller.reject(message_id, confirmed=confirmed))
    return loaded_view(controller)


@router.post("/{message_id}/hold", response_model=MessagesView)
async def hold_request(message_id: str, store: StoreDep, profile: CurrentProfileDep) -> MessagesView:
    """Put a request on hold."""
    controller = await _open_messages(store, profile)
    raise_for_result(await controller.hold(message_id))
    return loaded_view(controller)


@router.get("/chat/{partner_id}", response_model=MessagesView)
async def get_conversation(partner_id: str, store: StoreDep, profile: CurrentProfileDep) -> MessagesView:
    """Get the accepted conversation with one partner."""
    return loaded_view(await _open_messages(store, profile, partner_id))


@router.post("/chat/{partner_id}", response_model=MessagesView, status_code=status.HTTP_201_CREATED)
async def send_chat(
    partner_id: str,
    body: ChatCreate,
    store: StoreDep,
    profile: CurrentProfileDep,
) -> MessagesView:
    """Send a chat line to an existing chat partner."""
    controller = await _open_messages(store, profile, partner_id)
    raise_for_result(await controller.send_chat(partner_id, body.content))
    return loaded_view(controller)

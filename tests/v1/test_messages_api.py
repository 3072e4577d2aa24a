# mypy: ignore-errors
"""Tests for message request and chat endpoints."""

from __future__ import annotations

from fastapi import status

from campus_board.core.errors import StoreError
from campus_board.services.messages import MessageService


def test_messages_page(client, alice, bob, alice_headers, make_message) -> None:
    incoming = make_message(bob.id, alice.id)

    response = client.get("/api/v1/messages/", headers=alice_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [m["id"] for m in data["incoming"]] == [incoming.id]
    assert data["names"] == {bob.id: "Bob"}
    assert data["students"]["degraded"] is False
    assert data["messages"]["error"] is None


def test_recipients_by_grade(client, alice_headers, bob, make_profile) -> None:
    make_profile("carol", "Carol", grade=12)

    everyone = client.get("/api/v1/messages/students", headers=alice_headers).json()
    assert [s["name"] for s in everyone] == ["Bob", "Carol"]

    twelfth = client.get("/api/v1/messages/students", params={"grade": 12}, headers=alice_headers).json()
    assert [s["name"] for s in twelfth] == ["Carol"]


def test_send_request_to_many(client, alice_headers, bob, make_profile) -> None:
    carol = make_profile("carol", "Carol")

    response = client.post(
        "/api/v1/messages/",
        json={"receiver_ids": [bob.id, carol.id], "type": "스터디", "content": "Study group on Friday?"},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    outgoing = response.json()["outgoing"]
    assert sorted(m["receiver_id"] for m in outgoing) == [bob.id, carol.id]
    assert {m["status"] for m in outgoing} == {"pending"}


def test_send_request_validation(client, alice, alice_headers) -> None:
    no_receivers = client.post("/api/v1/messages/", json={"content": "hi"}, headers=alice_headers)
    assert no_receivers.status_code == status.HTTP_400_BAD_REQUEST

    to_self = client.post(
        "/api/v1/messages/", json={"receiver_ids": [alice.id], "content": "hi"}, headers=alice_headers
    )
    assert to_self.status_code == status.HTTP_400_BAD_REQUEST


def test_accept_then_chat(client, alice, bob, alice_headers, bob_headers, make_message) -> None:
    request = make_message(bob.id, alice.id, content="Can you help with chemistry?")

    accepted = client.post(f"/api/v1/messages/{request.id}/accept", headers=alice_headers)
    assert accepted.status_code == status.HTTP_200_OK
    view = accepted.json()
    assert view["selected_partner"] == bob.id
    assert view["chat_partners"] == [bob.id]

    reply = client.post(f"/api/v1/messages/chat/{alice.id}", json={"content": "Thanks!"}, headers=bob_headers)
    assert reply.status_code == status.HTTP_201_CREATED

    thread = client.get(f"/api/v1/messages/chat/{bob.id}", headers=alice_headers).json()
    assert [m["content"] for m in thread["conversation"]] == ["Can you help with chemistry?", "Thanks!"]
    assert {m["status"] for m in thread["conversation"]} == {"accepted"}


def test_only_receiver_can_accept(client, alice, bob, alice_headers, make_message) -> None:
    sent = make_message(alice.id, bob.id)

    response = client.post(f"/api/v1/messages/{sent.id}/accept", headers=alice_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_hold_and_reject(client, alice, bob, alice_headers, make_message) -> None:
    request = make_message(bob.id, alice.id)

    held = client.post(f"/api/v1/messages/{request.id}/hold", headers=alice_headers).json()
    assert [m["id"] for m in held["on_hold"]] == [request.id]

    unconfirmed = client.post(f"/api/v1/messages/{request.id}/reject", headers=alice_headers)
    assert unconfirmed.status_code == status.HTTP_400_BAD_REQUEST

    rejected = client.post(
        f"/api/v1/messages/{request.id}/reject", params={"confirmed": True}, headers=alice_headers
    ).json()
    assert rejected["on_hold"] == []

    again = client.post(f"/api/v1/messages/{request.id}/hold", headers=alice_headers)
    assert again.status_code == status.HTTP_409_CONFLICT


def test_unknown_message_is_not_found(client, alice_headers, alice) -> None:
    response = client.post("/api/v1/messages/missing/accept", headers=alice_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_chat_without_accepted_thread_is_rejected(client, bob, alice_headers) -> None:
    response = client.post(f"/api/v1/messages/chat/{bob.id}", json={"content": "hey"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_student_list_failure_still_answers_requests(
    client, alice, bob, alice_headers, make_message, mocker
) -> None:
    request = make_message(bob.id, alice.id)
    mocker.patch(
        "campus_board.services.messages_page.list_students",
        side_effect=StoreError("profiles unavailable"),
    )

    response = client.post(f"/api/v1/messages/{request.id}/accept", headers=alice_headers)

    assert response.status_code == status.HTTP_200_OK
    view = response.json()
    assert view["students"]["error"] == "profiles unavailable"
    assert view["chat_partners"] == [bob.id]

    recipients = client.get("/api/v1/messages/students", headers=alice_headers)
    assert recipients.status_code == status.HTTP_502_BAD_GATEWAY


def test_message_fetch_failure_is_bad_gateway(client, alice_headers, mocker) -> None:
    mocker.patch.object(MessageService, "load", side_effect=StoreError("network error"))

    response = client.get("/api/v1/messages/", headers=alice_headers)

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json()["detail"] == "network error"

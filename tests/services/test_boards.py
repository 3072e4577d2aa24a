"""Tests for board listing, filtering and post creation."""

from __future__ import annotations

import pytest

from campus_board.core.errors import InvalidInputError, StoreError
from campus_board.core.settings import settings
from campus_board.schemas.post import ImageUpload, PostCreate
from campus_board.services.boards import (
    ALL_CATEGORIES,
    BoardController,
    create_post,
    filter_posts,
    list_posts,
)
from campus_board.store.base import POST_ATTACHMENTS, POSTS

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.mark.asyncio
async def test_list_posts_newest_first_with_counts(
    store, alice, bob, make_post, make_comment, make_reaction
) -> None:
    older = make_post(alice.id, "Older")
    newer = make_post(bob.id, "Newer", category="교과목")
    make_comment(older.id, bob.id)
    make_comment(older.id, alice.id)
    make_reaction(older.id, bob.id, "like")
    make_reaction(older.id, alice.id, "dislike")

    posts = await list_posts(store)

    assert [p.id for p in posts] == [newer.id, older.id]
    summary = posts[1]
    assert (summary.likes_count, summary.dislikes_count, summary.comments_count) == (1, 1, 2)
    assert summary.author_name == "Alice"
    assert summary.author_username == "alice"


@pytest.mark.asyncio
async def test_filter_by_category_and_search(store, alice, bob, make_post) -> None:
    make_post(alice.id, "Robotics club recruiting", category="동아리")
    make_post(bob.id, "Calculus homework", category="학교 과제", content="Problem 3 help")
    make_post(bob.id, "Secret", category="기타", is_anonymous=True)
    posts = await list_posts(store)

    assert len(filter_posts(posts, ALL_CATEGORIES)) == 3
    assert [p.title for p in filter_posts(posts, "학교 과제")] == ["Calculus homework"]
    assert [p.title for p in filter_posts(posts, ALL_CATEGORIES, "problem 3")] == ["Calculus homework"]
    assert [p.title for p in filter_posts(posts, ALL_CATEGORIES, "alice")] == ["Robotics club recruiting"]
    # Anonymous authors are only searchable by the anonymous label.
    assert filter_posts(posts, "기타", "bob") == []
    assert [p.display_author for p in filter_posts(posts, "기타", "익명")] == ["익명"]


@pytest.mark.asyncio
async def test_create_post_uploads_images_in_order(store, blobs, alice) -> None:
    data = PostCreate(category="교내 대회", title="Science fair", content="Team photos")
    images = [
        ImageUpload("first.png", "image/png", PNG),
        ImageUpload("../second.png", "image/png", PNG + b"2"),
    ]

    post_id = await create_post(store, blobs, author_id=alice.id, data=data, images=images)

    attachments = await store.select(POST_ATTACHMENTS, eq={"post_id": post_id})
    attachments.sort(key=lambda row: row["sort_order"])
    assert [a["file_path"] for a in attachments] == [f"{post_id}/0-first.png", f"{post_id}/1-second.png"]
    assert [a["bucket"] for a in attachments] == [settings.attachment_bucket] * 2
    assert attachments[1]["size_bytes"] == len(PNG) + 1
    stored = blobs.root / settings.attachment_bucket / post_id / "0-first.png"
    assert stored.read_bytes() == PNG


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        PostCreate(category="없는 게시판", title="t", content="c"),
        PostCreate(category="동아리", title="  ", content="c"),
        PostCreate(category="동아리", title="t", content=""),
    ],
)
async def test_create_post_validation_issues_no_request(mocker, data) -> None:
    store = mocker.AsyncMock()
    blobs = mocker.AsyncMock()

    with pytest.raises(InvalidInputError):
        await create_post(store, blobs, author_id="alice", data=data)
    store.insert.assert_not_called()


@pytest.mark.asyncio
async def test_non_images_and_oversized_files_are_rejected(mocker, monkeypatch) -> None:
    store = mocker.AsyncMock()
    data = PostCreate(category="동아리", title="t", content="c")
    monkeypatch.setattr(settings, "max_attachment_bytes", 8)

    with pytest.raises(InvalidInputError, match="not an image"):
        await create_post(store, mocker.AsyncMock(), author_id="a", data=data,
                          images=[ImageUpload("notes.pdf", "application/pdf", b"%PDF")])
    with pytest.raises(InvalidInputError, match="larger than"):
        await create_post(store, mocker.AsyncMock(), author_id="a", data=data,
                          images=[ImageUpload("big.png", "image/png", PNG)])
    store.insert.assert_not_called()


@pytest.mark.asyncio
async def test_failed_upload_rolls_back_post(store, blobs, alice, mocker) -> None:
    too_big = StoreError("The object exceeded the maximum allowed size")
    mocker.patch.object(blobs, "upload", side_effect=["ignored", too_big])
    remove = mocker.patch.object(blobs, "remove", new_callable=mocker.AsyncMock)
    data = PostCreate(category="동아리", title="t", content="c")
    images = [ImageUpload("a.png", "image/png", PNG), ImageUpload("b.png", "image/png", PNG)]

    with pytest.raises(StoreError, match="maximum allowed size"):
        await create_post(store, blobs, author_id=alice.id, data=data, images=images)

    assert await store.select(POSTS) == []
    remove.assert_awaited_once_with(settings.attachment_bucket, ["ignored"])


@pytest.mark.asyncio
async def test_rollback_survives_failed_blob_cleanup(store, blobs, alice, mocker) -> None:
    mocker.patch.object(blobs, "upload", side_effect=["ignored", StoreError("quota exceeded")])
    mocker.patch.object(blobs, "remove", side_effect=StoreError("storage unavailable"))
    data = PostCreate(category="동아리", title="t", content="c")
    images = [ImageUpload("a.png", "image/png", PNG), ImageUpload("b.png", "image/png", PNG)]

    with pytest.raises(StoreError, match="quota exceeded"):
        await create_post(store, blobs, author_id=alice.id, data=data, images=images)

    assert await store.select(POSTS) == []


@pytest.mark.asyncio
async def test_board_controller_filters_and_reloads_after_create(store, blobs, alice, make_post) -> None:
    make_post(alice.id, "Existing", category="동아리")
    board = BoardController(store, blobs, alice)

    view = await board.set_filter("교과목")
    assert view.posts.data == []
    assert view.category == "교과목"

    result = await board.create_post(PostCreate(category="교과목", title="Physics notes", content="Ch. 4"))

    assert result.ok
    assert [p.title for p in board.state.posts.data] == ["Physics notes"]


@pytest.mark.asyncio
async def test_board_controller_reports_validation_as_notice(store, blobs, alice) -> None:
    board = BoardController(store, blobs, alice)
    await board.reload()

    result = await board.create_post(PostCreate(category="동아리", title="", content="c"))

    assert not result.ok
    assert board.notice == "Category, title and content are all required"


@pytest.mark.asyncio
async def test_board_degrades_when_listing_fails(mocker, blobs, alice) -> None:
    store = mocker.AsyncMock()
    store.select.side_effect = StoreError("connection refused")
    board = BoardController(store, blobs, alice)

    view = await board.reload()

    assert view.posts.degraded
    assert view.posts.error == "connection refused"
    assert view.posts.data == []


@pytest.mark.asyncio
async def test_unknown_filter_category_is_rejected(store, blobs, alice) -> None:
    with pytest.raises(InvalidInputError):
        await BoardController(store, blobs, alice).set_filter("없는 게시판")

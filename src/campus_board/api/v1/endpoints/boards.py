"""Board and post page endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from campus_board.core.errors import CampusBoardError
from campus_board.schemas.comment import CommentCreate
from campus_board.schemas.post import ImageUpload, PostCreate
from campus_board.schemas.reaction import ReactionRequest
from campus_board.schemas.views import BoardView, PostPageView
from campus_board.services.boards import ALL_CATEGORIES, BoardController
from campus_board.services.post_page import PostPageController

from ..dependencies import (
    BlobStoreDep,
    CurrentProfileDep,
    StoreDep,
    http_error,
    loaded_view,
    raise_for_result,
)

router = APIRouter(prefix="/boards", tags=["boards"])


async def _open_post(
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
    post_id: str,
) -> PostPageController:
    controller = PostPageController(store, blobs, profile, post_id)
    if await controller.reload() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return controller


def _page_or_404(controller: PostPageController) -> PostPageView:
    if controller.state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return controller.state


@router.get("/posts", response_model=BoardView)
async def list_board(
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
    category: str = ALL_CATEGORIES,
    q: Annotated[str, Query(max_length=200)] = "",
) -> BoardView:
    """List posts filtered by category and search text."""
    controller = BoardController(store, blobs, profile)
    try:
        await controller.set_filter(category, q)
    except CampusBoardError as exc:
        raise http_error(exc) from exc
    return loaded_view(controller)


@router.post("/posts", response_model=BoardView, status_code=status.HTTP_201_CREATED)
async def create_post(
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
    category: Annotated[str, Form()],
    title: Annotated[str, Form()],
    content: Annotated[str, Form()],
    is_anonymous: Annotated[bool, Form()] = False,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> BoardView:
    """Create a post with optional images; returns the reloaded board."""
    uploads = [
        ImageUpload(
            file_name=image.filename or "image",
            content_type=image.content_type or "application/octet-stream",
            content=await image.read(),
        )
        for image in images or []
    ]
    controller = BoardController(store, blobs, profile)
    data = PostCreate(category=category, title=title, content=content, is_anonymous=is_anonymous)
    raise_for_result(await controller.create_post(data, uploads))
    return loaded_view(controller)


@router.get("/posts/{post_id}", response_model=PostPageView)
async def get_post(
    post_id: str,
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
) -> PostPageView:
    """Get a post with its comment tree, attachments and the caller's reaction."""
    controller = await _open_post(store, blobs, profile, post_id)
    return _page_or_404(controller)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
) -> None:
    """Delete a post as its author or an admin."""
    controller = await _open_post(store, blobs, profile, post_id)
    raise_for_result(await controller.delete_post())


@router.post("/posts/{post_id}/reaction", response_model=PostPageView)
async def toggle_reaction(
    post_id: str,
    body: ReactionRequest,
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
) -> PostPageView:
    """Like or dislike a post; sending the current reaction again clears it."""
    controller = await _open_post(store, blobs, profile, post_id)
    raise_for_result(await controller.toggle_reaction(body.reaction))
    return _page_or_404(controller)


@router.post("/posts/{post_id}/comments", response_model=PostPageView, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
) -> PostPageView:
    """Comment on a post or reply to one of its comments."""
    controller = await _open_post(store, blobs, profile, post_id)
    result = await controller.add_comment(
        body.content,
        parent_comment_id=body.parent_comment_id,
        is_anonymous=body.is_anonymous,
    )
    raise_for_result(result)
    return _page_or_404(controller)


@router.delete("/posts/{post_id}/comments/{comment_id}", response_model=PostPageView)
async def delete_comment(
    post_id: str,
    comment_id: str,
    store: StoreDep,
    blobs: BlobStoreDep,
    profile: CurrentProfileDep,
) -> PostPageView:
    """Delete a comment as its author or an admin; its replies stay."""
    controller = await _open_post(store, blobs, profile, post_id)
    raise_for_result(await controller.delete_comment(comment_id))
    return _page_or_404(controller)

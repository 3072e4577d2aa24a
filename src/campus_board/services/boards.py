"""Category boards: listing, filtering and creating posts."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath

from campus_board.core.errors import InvalidInputError, StoreError
from campus_board.core.settings import settings
from campus_board.models.post import POST_CATEGORIES
from campus_board.schemas.common import Section
from campus_board.schemas.post import ImageUpload, PostCreate, PostSummary
from campus_board.schemas.profile import ProfileRecord
from campus_board.schemas.views import BoardView
from campus_board.store.base import POST_ATTACHMENTS, POST_SUMMARIES, POSTS, RecordStore, desc
from campus_board.store.blob import BlobStore

from .refresh import ViewController

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "전체"


async def list_posts(store: RecordStore) -> list[PostSummary]:
    """Return every post summary, newest first."""
    rows = await store.select(POST_SUMMARIES, order_by=[desc("created_at")])
    return [PostSummary.model_validate(row) for row in rows]


def filter_posts(
    posts: Iterable[PostSummary],
    category: str = ALL_CATEGORIES,
    query: str = "",
) -> list[PostSummary]:
    """Keep posts in ``category`` whose title, content or author contains ``query``."""
    needle = query.strip().lower()
    matches: list[PostSummary] = []
    for post in posts:
        if category != ALL_CATEGORIES and post.category != category:
            continue
        if needle and not any(
            needle in (text or "").lower()
            for text in (post.title, post.content, post.display_author)
        ):
            continue
        matches.append(post)
    return matches


def validate_post(data: PostCreate) -> None:
    """Reject a post before any request when required fields are missing."""
    if data.category not in POST_CATEGORIES or not data.title.strip() or not data.content.strip():
        raise InvalidInputError("Category, title and content are all required")


def validate_images(images: Sequence[ImageUpload], max_bytes: int) -> None:
    """Only images within the size limit may be attached."""
    for image in images:
        if not image.content_type.startswith("image/"):
            raise InvalidInputError(f"{image.file_name} is not an image")
        if len(image.content) > max_bytes:
            raise InvalidInputError(f"{image.file_name} is larger than {max_bytes} bytes")


def _object_path(post_id: str, index: int, file_name: str) -> str:
    name = PurePosixPath(file_name.replace("\\", "/")).name or f"image-{index}"
    return f"{post_id}/{index}-{name}"


async def create_post(
    store: RecordStore,
    blobs: BlobStore,
    *,
    author_id: str,
    data: PostCreate,
    images: Sequence[ImageUpload] = (),
) -> str:
    """Insert a post, upload its images and record them as attachments.

    There is no transaction spanning the store and the blob store; if an
    upload or attachment insert fails, uploaded objects and the post row are
    removed again before the error is re-raised.
    """
    validate_post(data)
    validate_images(images, settings.max_attachment_bytes)

    rows = await store.insert(
        POSTS,
        {
            "author_id": author_id,
            "category": data.category,
            "title": data.title.strip(),
            "content": data.content.strip(),
            "is_anonymous": data.is_anonymous,
        },
    )
    post_id = rows[0]["id"]
    if not images:
        logger.info("Created post %s", post_id)
        return post_id

    bucket = settings.attachment_bucket
    uploaded: list[str] = []
    try:
        attachments = []
        for index, image in enumerate(images):
            path = await blobs.upload(
                bucket, _object_path(post_id, index, image.file_name), image.content, image.content_type
            )
            uploaded.append(path)
            attachments.append(
                {
                    "post_id": post_id,
                    "bucket": bucket,
                    "file_path": path,
                    "file_name": image.file_name,
                    "mime_type": image.content_type,
                    "size_bytes": len(image.content),
                    "sort_order": index,
                }
            )
        await store.insert(POST_ATTACHMENTS, attachments)
    except StoreError:
        logger.warning("Rolling back post %s after attachment failure", post_id)
        if uploaded:
            try:
                await blobs.remove(bucket, uploaded)
            except StoreError as exc:
                logger.warning("Could not remove uploaded images of post %s: %s", post_id, exc)
        try:
            await store.delete(POSTS, eq={"id": post_id})
        except StoreError as exc:
            logger.warning("Could not delete post %s during rollback: %s", post_id, exc)
        raise

    logger.info("Created post %s with %d image(s)", post_id, len(uploaded))
    return post_id


class BoardController(ViewController[BoardView]):
    """Board listing with category and search filters."""

    def __init__(self, store: RecordStore, blobs: BlobStore, profile: ProfileRecord) -> None:
        """Initialize the board for the signed-in ``profile``."""
        super().__init__()
        self.store = store
        self.blobs = blobs
        self.profile = profile
        self.category = ALL_CATEGORIES
        self.query = ""

    async def _load(self) -> BoardView:
        try:
            posts = filter_posts(await list_posts(self.store), self.category, self.query)
            section = Section[list[PostSummary]](data=posts)
        except StoreError as exc:
            section = Section[list[PostSummary]](data=[], error=str(exc))
        return BoardView(category=self.category, query=self.query, posts=section)

    async def set_filter(self, category: str = ALL_CATEGORIES, query: str = "") -> BoardView | None:
        """Change the filters and reload the listing."""
        if category != ALL_CATEGORIES and category not in POST_CATEGORIES:
            raise InvalidInputError(f"Unknown category: {category}")
        self.category = category
        self.query = query
        return await self.reload()

    async def create_post(self, data: PostCreate, images: Sequence[ImageUpload] = ()):
        """Create a post as the signed-in user and reload the board."""
        return await self.mutate(
            lambda: create_post(self.store, self.blobs, author_id=self.profile.id, data=data, images=images)
        )

"""Post page: parallel load, reactions, comments and deletion."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from campus_board.core.errors import InvalidInputError, NotFoundError, PermissionDeniedError, StoreError
from campus_board.schemas.comment import CommentNode, CommentRecord
from campus_board.schemas.common import Section
from campus_board.schemas.post import AttachmentRecord, PostSummary
from campus_board.schemas.profile import ProfileRecord
from campus_board.schemas.reaction import ReactionValue
from campus_board.schemas.views import PostPageView
from campus_board.store.base import (
    COMMENT_SUMMARIES,
    COMMENTS,
    POST_ATTACHMENTS,
    POST_SUMMARIES,
    POSTS,
    REACTIONS,
    RecordStore,
    asc,
)
from campus_board.store.blob import BlobStore

from .comment_tree import build_comment_tree, find_comment
from .profiles import can_delete
from .reactions import apply_reaction
from .refresh import MutationResult, ViewController, gathered_error

logger = logging.getLogger(__name__)


async def load_post_page(
    store: RecordStore,
    blobs: BlobStore,
    *,
    post_id: str,
    viewer: ProfileRecord,
) -> PostPageView | None:
    """Fetch post, comments, the viewer's reaction and attachments in parallel.

    Returns ``None`` when the post cannot be read. A failure in any other
    fetch only degrades its own section.
    """
    post_row, comment_rows, reaction_row, attachment_rows = await asyncio.gather(
        store.select_one(POST_SUMMARIES, eq={"id": post_id}),
        store.select(COMMENT_SUMMARIES, eq={"post_id": post_id}, order_by=[asc("created_at")]),
        store.select_one(REACTIONS, columns=["reaction"], eq={"post_id": post_id, "user_id": viewer.id}),
        store.select(POST_ATTACHMENTS, eq={"post_id": post_id}, order_by=[asc("sort_order")]),
        return_exceptions=True,
    )

    post_error = gathered_error(post_row)
    if post_error is not None or post_row is None:
        if post_error:
            logger.warning("Post %s could not be loaded: %s", post_id, post_error)
        return None
    post = PostSummary.model_validate(post_row)

    comments_error = gathered_error(comment_rows)
    flat = [] if comments_error else [CommentRecord.model_validate(row) for row in comment_rows]
    comments = Section[list[CommentNode]](data=build_comment_tree(flat), error=comments_error)

    reaction_error = gathered_error(reaction_row)
    reaction = None if reaction_error or reaction_row is None else reaction_row.get("reaction")
    my_reaction = Section[ReactionValue | None](data=reaction, error=reaction_error)

    attachments_error = gathered_error(attachment_rows)
    attachments: list[AttachmentRecord] = []
    if not attachments_error:
        for row in attachment_rows:
            record = AttachmentRecord.model_validate(row)
            record.public_url = blobs.public_url(record.bucket, record.file_path)
            attachments.append(record)

    return PostPageView(
        post=post,
        comments=comments,
        comment_total=len(flat),
        my_reaction=my_reaction,
        attachments=Section[list[AttachmentRecord]](data=attachments, error=attachments_error),
        can_delete_post=can_delete(viewer, post.author_id),
    )


class PostPageController(ViewController[PostPageView | None]):
    """A single post with its comment tree and the viewer's reaction.

    ``state`` is ``None`` when the post does not exist (or no longer does).
    """

    def __init__(self, store: RecordStore, blobs: BlobStore, profile: ProfileRecord, post_id: str) -> None:
        """Initialize the page for ``post_id`` as seen by ``profile``."""
        super().__init__()
        self.store = store
        self.blobs = blobs
        self.profile = profile
        self.post_id = post_id

    async def _load(self) -> PostPageView | None:
        return await load_post_page(self.store, self.blobs, post_id=self.post_id, viewer=self.profile)

    def _require_page(self) -> PostPageView:
        if self.state is None:
            raise NotFoundError("Post not found")
        return self.state

    async def toggle_reaction(self, requested: ReactionValue) -> MutationResult[ReactionValue | None]:
        """Like or dislike the post; repeating the current reaction removes it."""

        async def _toggle() -> ReactionValue | None:
            page = self._require_page()
            return await apply_reaction(
                self.store,
                post_id=page.post.id,
                user_id=self.profile.id,
                current=page.my_reaction.data,
                requested=requested,
            )

        return await self.mutate(_toggle)

    async def add_comment(
        self,
        content: str,
        *,
        parent_comment_id: str | None = None,
        is_anonymous: bool = False,
    ) -> MutationResult[str]:
        """Comment on the post, or reply to ``parent_comment_id``."""

        async def _add() -> str:
            page = self._require_page()
            body = content.strip()
            if not body:
                raise InvalidInputError("Comment cannot be empty")
            rows = await self.store.insert(
                COMMENTS,
                {
                    "post_id": page.post.id,
                    "author_id": self.profile.id,
                    "parent_comment_id": parent_comment_id,
                    "content": body,
                    "is_anonymous": is_anonymous,
                },
            )
            return rows[0]["id"]

        return await self.mutate(_add)

    async def delete_comment(self, comment_id: str) -> MutationResult[int]:
        """Delete one comment as its author or an admin; replies are kept."""

        async def _delete() -> int:
            page = self._require_page()
            node = find_comment(page.comments.data, comment_id)
            if node is None:
                raise NotFoundError("Comment not found")
            if not can_delete(self.profile, node.author_id):
                raise PermissionDeniedError("Only the author or an admin can delete this comment")
            return await self.store.delete(COMMENTS, eq={"id": comment_id})

        return await self.mutate(_delete)

    async def delete_post(self) -> MutationResult[int]:
        """Delete the post as its author or an admin.

        Attachment objects are removed from the blob store first, grouped by
        bucket; then the post row goes, taking comments, reactions and
        attachment rows with it.
        """

        async def _delete() -> int:
            page = self._require_page()
            if not can_delete(self.profile, page.post.author_id):
                raise PermissionDeniedError("Only the author or an admin can delete this post")

            paths_by_bucket: dict[str, list[str]] = defaultdict(list)
            for attachment in page.attachments.data:
                paths_by_bucket[attachment.bucket].append(attachment.file_path)
            removals = await asyncio.gather(
                *(self.blobs.remove(bucket, paths) for bucket, paths in paths_by_bucket.items()),
                return_exceptions=True,
            )
            for bucket, outcome in zip(paths_by_bucket, removals):
                if gathered_error(outcome):
                    logger.warning("Could not remove objects of post %s from %s: %s", page.post.id, bucket, outcome)

            deleted = await self.store.delete(POSTS, eq={"id": page.post.id})
            if not deleted:
                raise StoreError("Post was not deleted")
            logger.info("Deleted post %s", page.post.id)
            return deleted

        return await self.mutate(_delete)

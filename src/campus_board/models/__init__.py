"""SQLAlchemy models for the Campus Board record store."""

from .attachment import PostAttachment
from .comment import Comment
from .message import MESSAGE_STATUSES, Message
from .post import POST_CATEGORIES, Post
from .profile import PROFILE_ROLES, Profile
from .reaction import REACTION_VALUES, Reaction

__all__ = [
    "Comment",
    "Message", "MESSAGE_STATUSES",
    "Post", "POST_CATEGORIES",
    "PostAttachment",
    "Profile", "PROFILE_ROLES",
    "Reaction", "REACTION_VALUES",
]

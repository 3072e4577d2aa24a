"""
Pydantic schemas for store records, request bodies and view models.

Field names and enumerations match the store's columns exactly.
"""

from .comment import CommentCreate, CommentNode, CommentRecord
from .common import Section
from .message import ChatCreate, MessageCreate, MessageRecord, MessageStatus, StudentOption
from .post import AttachmentRecord, ImageUpload, PostCreate, PostSummary
from .profile import InterestCreate, ProfileRecord, ProfileUpdate
from .reaction import ReactionRequest, ReactionValue
from .views import BoardView, MessagesView, PostPageView

__all__ = [
    "CommentCreate", "CommentNode", "CommentRecord",
    "Section",
    "ChatCreate", "MessageCreate", "MessageRecord", "MessageStatus", "StudentOption",
    "AttachmentRecord", "ImageUpload", "PostCreate", "PostSummary",
    "InterestCreate", "ProfileRecord", "ProfileUpdate",
    "ReactionRequest", "ReactionValue",
    "BoardView", "MessagesView", "PostPageView",
]

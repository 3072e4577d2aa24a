"""Business logic services for the campus board."""

from .boards import BoardController
from .messages import MessageService
from .messages_page import MessagesController
from .post_page import PostPageController
from .profiles import ProfileSession
from .refresh import LoadGuard, MutationResult, ViewController

__all__ = [
    "BoardController",
    "PostPageController",
    "MessagesController",
    "MessageService",
    "ProfileSession",
    "LoadGuard",
    "MutationResult",
    "ViewController",
]

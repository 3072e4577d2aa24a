"""Comment tree reconstruction: pure functions, no I/O."""

from __future__ import annotations

from collections.abc import Iterable

from campus_board.schemas.comment import CommentNode, CommentRecord

_NODE_ONLY_FIELDS = {"replies", "display_author"}


def build_comment_tree(flat: Iterable[CommentRecord]) -> list[CommentNode]:
    """Nest flat comments (oldest first) into a reply forest.

    Each comment is copied into a fresh node, so the input is never mutated
    and repeated calls give equal trees. A comment whose parent is missing
    from the batch becomes a root. Replies keep their input order.
    """
    by_id: dict[str, CommentNode] = {}
    for comment in flat:
        by_id[comment.id] = CommentNode.model_validate(
            comment.model_dump(exclude=_NODE_ONLY_FIELDS)
        )

    # child id -> parent id for links actually made; keeps the forest acyclic
    linked: dict[str, str] = {}

    def _creates_cycle(node_id: str, parent_id: str) -> bool:
        cursor: str | None = parent_id
        while cursor is not None:
            if cursor == node_id:
                return True
            cursor = linked.get(cursor)
        return False

    roots: list[CommentNode] = []
    for node in by_id.values():
        parent_id = node.parent_comment_id
        if parent_id is not None and parent_id in by_id and not _creates_cycle(node.id, parent_id):
            by_id[parent_id].replies.append(node)
            linked[node.id] = parent_id
        else:
            roots.append(node)
    return roots


def flatten_comment_tree(nodes: Iterable[CommentNode]) -> list[CommentRecord]:
    """Return the comments of a tree depth-first, parents before replies."""
    flat: list[CommentRecord] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        flat.append(CommentRecord.model_validate(node.model_dump(exclude=_NODE_ONLY_FIELDS)))
        stack.extend(reversed(node.replies))
    return flat


def find_comment(nodes: Iterable[CommentNode], comment_id: str) -> CommentNode | None:
    """Return the node with ``comment_id`` anywhere in the tree."""
    stack = list(nodes)
    while stack:
        node = stack.pop()
        if node.id == comment_id:
            return node
        stack.extend(node.replies)
    return None

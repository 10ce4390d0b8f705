"""Posts, comments and likes in groups and companies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from talenthub.core import constants
from talenthub.errors import ConflictError, NotFoundError, PermissionDeniedError
from talenthub.notifications import Audience, NotificationEvent
from talenthub.store.models import (
    Comment,
    Company,
    CompanyMember,
    Group,
    GroupMember,
    Member,
    Post,
)

from .membership import find_membership
from .results import TransitionResult
from .validation import require_content

if TYPE_CHECKING:
    from google.cloud.firestore_v1.transaction import Transaction

    from talenthub.auth.models import Actor
    from talenthub.notifications import NotificationFanout
    from talenthub.store.services import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostScope:
    """Where a post lives and how its comments are counted."""

    name: str
    parent_model: type[Any]
    member_model: type[Member]
    parent_field: str
    posts: str
    comments: str
    counter: str
    post_type: str
    comment_type: str


GROUP_SCOPE = PostScope(
    name="group",
    parent_model=Group,
    member_model=GroupMember,
    parent_field="groupId",
    posts=constants.GROUP_POSTS,
    comments=constants.GROUP_POST_REPLIES,
    counter="replyCount",
    post_type="group_post",
    comment_type="group_reply",
)

COMPANY_SCOPE = PostScope(
    name="company",
    parent_model=Company,
    member_model=CompanyMember,
    parent_field="companyId",
    posts=constants.COMPANY_POSTS,
    comments=constants.COMPANY_COMMENTS,
    counter="commentCount",
    post_type="company_post",
    comment_type="company_comment",
)

SCOPES = {scope.name: scope for scope in (GROUP_SCOPE, COMPANY_SCOPE)}


class ContentService:
    """Create and moderate posts and comments.

    Counters (``likeCount`` and the scope's comment counter) only ever move
    through ``firestore.Increment`` in the transaction that changes the
    underlying likes or comments.
    """

    def __init__(self, store: EntityStore, fanout: NotificationFanout) -> None:
        self.store = store
        self.fanout = fanout

    def _parent(self, scope: PostScope, parent_id: str) -> Any:
        parent = self.store.load(scope.parent_model, parent_id)
        if scope is COMPANY_SCOPE and parent.is_ended:
            raise ConflictError(f"{parent.name} has ended; no new content is allowed.")
        return parent

    def _membership(self, scope: PostScope, parent_id: str, actor: Actor) -> Member:
        member = find_membership(
            self.store,
            scope.member_model,
            scope.parent_field,
            parent_id,
            actor.user_id,
            actor.email,
        )
        if member is None or not member.is_active:
            raise PermissionDeniedError(f"You must be a member of this {scope.name}.")
        return member

    def _load_post(self, scope: PostScope, post_id: str) -> Post:
        data = self.store.get(scope.posts, post_id)
        return Post.from_dict(post_id, data)

    def create_post(
        self,
        scope: PostScope,
        parent_id: str,
        actor: Actor,
        content: str,
        title: str = "",
    ) -> TransitionResult:
        """Publish a post and notify the other members."""
        content = require_content(content, constants.MAX_POST_LENGTH, "Post")
        parent = self._parent(scope, parent_id)
        member = self._membership(scope, parent_id, actor)
        if scope is COMPANY_SCOPE and not member.is_admin:
            raise PermissionDeniedError("Only company admins can create posts.")

        post_id = self.store.create(
            scope.posts,
            {
                scope.parent_field: parent_id,
                "authorId": actor.user_id,
                "authorName": actor.name,
                "authorEmail": actor.email,
                "title": title.strip(),
                "content": content,
                "likes": [],
                "likeCount": 0,
                scope.counter: 0,
                "isSystemPost": False,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
        )
        logger.info(f"{actor.label} posted {post_id} in {scope.name} {parent_id}")

        result = TransitionResult("create_post", post_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type=scope.post_type,
                title="New Company Post" if scope is COMPANY_SCOPE else "New Team Post",
                message=f"{actor.name} posted in {parent.name}: {_preview(content)}",
                related_ids={scope.parent_field: parent_id, "postId": post_id},
            ),
            Audience(scope.name, target_id=parent_id),
            exclude_user_id=actor.user_id,
        )
        return result

    def add_comment(
        self, scope: PostScope, post_id: str, actor: Actor, content: str
    ) -> TransitionResult:
        """Comment on a post, bumping its comment counter atomically."""
        content = require_content(content, constants.MAX_COMMENT_LENGTH, "Comment")
        post = self._load_post(scope, post_id)
        parent = self._parent(scope, post.parent_id)
        self._membership(scope, post.parent_id, actor)
        store = self.store

        def _comment(transaction: Transaction) -> str:
            if store.read(transaction, scope.posts, post_id) is None:
                raise NotFoundError(f"Post {post_id} no longer exists.")
            comment_ref = store.ref(scope.comments)
            transaction.set(
                comment_ref,
                {
                    "postId": post_id,
                    scope.parent_field: post.parent_id,
                    "authorId": actor.user_id,
                    "authorName": actor.name,
                    "authorEmail": actor.email,
                    "content": content,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(scope.posts, post_id),
                {
                    scope.counter: firestore.Increment(1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return comment_ref.id

        comment_id = store.run_transaction(_comment)

        result = TransitionResult("add_comment", comment_id)
        if post.author_id and post.author_id != "system":
            result.notifications = self.fanout.notify(
                NotificationEvent(
                    type=scope.comment_type,
                    title="New Comment",
                    message=(
                        f"{actor.name} commented on your post in {parent.name}: "
                        f"{_preview(content)}"
                    ),
                    related_ids={scope.parent_field: post.parent_id, "postId": post_id},
                ),
                Audience.user(post.author_id),
                exclude_user_id=actor.user_id,
            )
        return result

    def delete_comment(
        self, scope: PostScope, comment_id: str, actor: Actor
    ) -> TransitionResult:
        """Delete a comment. Authors and parent admins may do this."""
        data = self.store.get(scope.comments, comment_id)
        comment = Comment.from_dict(comment_id, data)
        if comment.author_id != actor.user_id and not actor.is_admin:
            member = find_membership(
                self.store,
                scope.member_model,
                scope.parent_field,
                comment.parent_id,
                actor.user_id,
                actor.email,
            )
            if member is None or not member.is_admin:
                raise PermissionDeniedError("You can only delete your own comments.")
        store = self.store

        def _delete(transaction: Transaction) -> None:
            post_exists = (
                store.read(transaction, scope.posts, comment.post_id) is not None
            )
            if store.read(transaction, scope.comments, comment_id) is None:
                raise NotFoundError(f"Comment {comment_id} was already deleted.")
            transaction.delete(store.ref(scope.comments, comment_id))
            if post_exists:
                transaction.update(
                    store.ref(scope.posts, comment.post_id),
                    {
                        scope.counter: firestore.Increment(-1),
                        "updatedAt": firestore.SERVER_TIMESTAMP,
                    },
                )

        store.run_transaction(_delete)
        logger.info(f"Comment {comment_id} deleted by {actor.label}")
        return TransitionResult("delete_comment", comment_id)

    def toggle_like(self, scope: PostScope, post_id: str, actor: Actor) -> dict:
        """Like or unlike a post and return the new state."""
        post = self._load_post(scope, post_id)
        self._membership(scope, post.parent_id, actor)
        store = self.store

        def _toggle(transaction: Transaction) -> dict:
            data = store.read(transaction, scope.posts, post_id)
            if data is None:
                raise NotFoundError(f"Post {post_id} no longer exists.")
            current = Post.from_dict(post_id, data)
            liked = actor.user_id in current.likes
            transaction.update(
                store.ref(scope.posts, post_id),
                {
                    "likes": (
                        firestore.ArrayRemove([actor.user_id])
                        if liked
                        else firestore.ArrayUnion([actor.user_id])
                    ),
                    "likeCount": firestore.Increment(-1 if liked else 1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return {
                "liked": not liked,
                "likeCount": current.like_count + (-1 if liked else 1),
            }

        return store.run_transaction(_toggle)


def _preview(content: str, length: int = 80) -> str:
    return content if len(content) <= length else content[: length - 3] + "..."

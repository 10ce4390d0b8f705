"""Cascading deletion of root entities and their dependent records."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from firebase_admin import firestore

from talenthub.core import constants
from talenthub.errors import ValidationError
from talenthub.notifications import Audience, NotificationEvent
from talenthub.store.models import Company, Event, Group, Post, Project, ProjectStatus

from .receipts import DeletionReceipt

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot

    from talenthub.auth.models import Actor
    from talenthub.notifications import NotificationFanout
    from talenthub.store.services import EntityStore

logger = logging.getLogger(__name__)

CONFIRMATION_PHRASES = {
    "group": constants.PHRASE_DELETE_GROUP,
    "project": constants.PHRASE_DELETE,
    "event": constants.PHRASE_DELETE,
    "post": constants.PHRASE_DELETE,
    "company": constants.PHRASE_DELETE_COMPANY,
    "all_groups": constants.PHRASE_DELETE_ALL,
    "all_posts": constants.PHRASE_DELETE_ALL,
    "all_companies": constants.PHRASE_DELETE_ALL_COMPANIES,
}

ROOT_COLLECTIONS = {
    "group": constants.GROUPS,
    "project": constants.PROJECTS,
    "event": constants.EVENTS,
    "post": constants.POSTS,
    "company": constants.COMPANIES,
}

# Firestore caps the number of values in an "in" filter.
IN_FILTER_LIMIT = 10


@dataclass(frozen=True)
class ChildStep:
    """Delete every document in ``collection`` whose ``field`` is the root id."""

    label: str
    collection: str
    field: str


GROUP_CHILDREN = (
    ChildStep("members", constants.GROUP_MEMBERS, "groupId"),
    ChildStep("posts", constants.GROUP_POSTS, "groupId"),
    ChildStep("badges", constants.MEMBER_BADGES, "groupId"),
    ChildStep("certificates", constants.CERTIFICATES, "groupId"),
    ChildStep("completionRequests", constants.COMPLETION_REQUESTS, "groupId"),
    ChildStep("notifications", constants.NOTIFICATIONS, "groupId"),
)
PROJECT_CHILDREN = (
    ChildStep("applications", constants.PROJECT_APPLICATIONS, "projectId"),
    ChildStep("notifications", constants.NOTIFICATIONS, "projectId"),
)
EVENT_CHILDREN = (
    ChildStep("registrations", constants.EVENT_REGISTRATIONS, "eventId"),
    ChildStep("notifications", constants.NOTIFICATIONS, "eventId"),
)
COMPANY_CHILDREN = (
    ChildStep("members", constants.COMPANY_MEMBERS, "companyId"),
    ChildStep("comments", constants.COMPANY_COMMENTS, "companyId"),
    ChildStep("posts", constants.COMPANY_POSTS, "companyId"),
    ChildStep("notifications", constants.NOTIFICATIONS, "companyId"),
)
POST_CHILDREN = (ChildStep("notifications", constants.NOTIFICATIONS, "postId"),)


def require_confirmation(kind: str, confirm: bool, phrase: Optional[str]) -> None:
    """Reject a destructive call unless it is confirmed with the exact phrase."""
    expected = CONFIRMATION_PHRASES.get(kind)
    if expected is None:
        raise ValidationError(f"Unknown deletion target: {kind}")
    if confirm is not True:
        raise ValidationError("Deletion must be explicitly confirmed.")
    if phrase != expected:
        raise ValidationError(f'Type "{expected}" exactly to confirm this deletion.')


class CascadeDeletionEngine:
    """Delete a root entity and its full dependency closure.

    Collections are processed one after another, children before parents.
    Within a single collection the deletes run concurrently on a bounded
    thread pool. A failed delete is recorded on the receipt and the cascade
    carries on; the root is removed last regardless.
    """

    def __init__(
        self,
        store: EntityStore,
        fanout: NotificationFanout,
        max_workers: int = constants.CASCADE_MAX_WORKERS,
    ) -> None:
        self.store = store
        self.fanout = fanout
        self.max_workers = max(1, max_workers)

    def ensure_root(self, kind: str, root_id: str) -> dict[str, Any]:
        """Return the root document or raise NotFoundError."""
        return self.store.get(ROOT_COLLECTIONS[kind], root_id)

    # Collection-level primitives

    def _delete_snapshots(
        self,
        receipt: DeletionReceipt,
        label: str,
        snapshots: list[DocumentSnapshot],
    ) -> None:
        refs = [s.reference for s in snapshots if s.exists]
        deleted = 0
        if refs:
            workers = min(self.max_workers, len(refs))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {pool.submit(ref.delete): ref for ref in refs}
                for future in as_completed(futures):
                    ref = futures[future]
                    try:
                        future.result()
                        deleted += 1
                    except Exception as e:
                        logger.error(f"Failed to delete {label} {ref.id}: {e}")
                        receipt.fail(label, ref.id, e)
        receipt.record(label, deleted)

    def _delete_children(
        self, receipt: DeletionReceipt, step: ChildStep, root_id: str
    ) -> None:
        try:
            snapshots = self.store.query(step.collection, (step.field, "==", root_id))
        except Exception as e:
            logger.error(f"Could not list {step.label} for {root_id}: {e}")
            receipt.fail(step.label, None, e)
            return
        self._delete_snapshots(receipt, step.label, snapshots)

    def _delete_matching(
        self,
        receipt: DeletionReceipt,
        label: str,
        collection: str,
        field_path: str,
        values: list[str],
    ) -> None:
        snapshots: list[DocumentSnapshot] = []
        try:
            for start in range(0, len(values), IN_FILTER_LIMIT):
                chunk = values[start : start + IN_FILTER_LIMIT]
                snapshots.extend(
                    self.store.query(collection, (field_path, "in", chunk))
                )
        except Exception as e:
            logger.error(f"Could not list {label} for {field_path} in {values}: {e}")
            receipt.fail(label, None, e)
            return
        self._delete_snapshots(receipt, label, snapshots)

    def _delete_root(
        self, receipt: DeletionReceipt, collection: str, root_id: str
    ) -> bool:
        try:
            self.store.delete(collection, root_id)
        except Exception as e:
            logger.error(f"Failed to delete {collection}/{root_id}: {e}")
            receipt.fail(collection, root_id, e)
            return False
        return True

    def _notify_owner(
        self,
        receipt: DeletionReceipt,
        audience: Audience,
        notice_type: str,
        title: str,
        message: str,
    ) -> None:
        # Deletion notices must not reference the deleted root as a cascade key.
        result = self.fanout.notify(
            NotificationEvent(
                type=notice_type,
                title=title,
                message=message,
                priority="high",
                extra={
                    "deletedEntityType": receipt.root,
                    "deletedEntityId": receipt.root_id,
                },
            ),
            audience,
        )
        receipt.owner_notified = result.written > 0

    # Closures

    def _group_closure(self, receipt: DeletionReceipt, group_id: str) -> bool:
        try:
            post_ids = [
                s.id
                for s in self.store.query(
                    constants.GROUP_POSTS, ("groupId", "==", group_id)
                )
            ]
        except Exception as e:
            logger.error(f"Could not list posts for group {group_id}: {e}")
            receipt.fail("replies", None, e)
            post_ids = []
        self._delete_matching(
            receipt, "replies", constants.GROUP_POST_REPLIES, "postId", post_ids
        )
        for step in GROUP_CHILDREN:
            self._delete_children(receipt, step, group_id)
        return self._delete_root(receipt, constants.GROUPS, group_id)

    def _detached_group_closure(self, receipt: DeletionReceipt, group_id: str) -> bool:
        """Delete a group on its own and release the project it was serving."""
        data = self.store.find(constants.GROUPS, group_id)
        deleted = self._group_closure(receipt, group_id)
        if deleted and data is not None:
            self._release_project(receipt, Group.from_dict(group_id, data))
        return deleted

    def _release_project(self, receipt: DeletionReceipt, group: Group) -> None:
        """Send the group's project back to pending with its group link cleared.

        An approved project always owns a live group, so once the group is gone
        the project has to be approved again, which builds a fresh group.
        """
        if not group.project_id:
            return
        link = {"projectId": group.project_id, "groupId": group.id}
        try:
            project = self.store.find(constants.PROJECTS, group.project_id)
            if project is None or project.get("groupId") != group.id:
                link["action"] = "none"
            else:
                self.store.update(
                    constants.PROJECTS,
                    group.project_id,
                    {
                        "status": ProjectStatus.PENDING.value,
                        "groupId": None,
                        "groupCreated": False,
                        "groupDeletedAt": firestore.SERVER_TIMESTAMP,
                    },
                )
                link["action"] = "returned_to_pending"
        except Exception as e:
            logger.error(
                f"Could not release project {group.project_id} from deleted "
                f"group {group.id}: {e}"
            )
            receipt.fail("projectLink", group.project_id, e)
            link["action"] = "dangling"
        receipt.link_project(link)

    def _project_closure(self, receipt: DeletionReceipt, project: Project) -> bool:
        if project.group_id:
            if self.store.find(constants.GROUPS, project.group_id) is not None:
                if self._group_closure(receipt, project.group_id):
                    receipt.record("group", 1)
            else:
                for step in GROUP_CHILDREN:
                    self._delete_children(receipt, step, project.group_id)
        for step in PROJECT_CHILDREN:
            self._delete_children(receipt, step, project.id)
        return self._delete_root(receipt, constants.PROJECTS, project.id)

    def _company_closure(self, receipt: DeletionReceipt, company_id: str) -> bool:
        for step in COMPANY_CHILDREN:
            self._delete_children(receipt, step, company_id)
        return self._delete_root(receipt, constants.COMPANIES, company_id)

    def _post_closure(self, receipt: DeletionReceipt, post_id: str) -> bool:
        try:
            replies = self.store.subcollection(
                constants.POSTS, post_id, constants.POST_REPLIES_SUBCOLLECTION
            )
        except Exception as e:
            logger.error(f"Could not list replies for post {post_id}: {e}")
            receipt.fail("replies", None, e)
        else:
            self._delete_snapshots(receipt, "replies", replies)
        for step in POST_CHILDREN:
            self._delete_children(receipt, step, post_id)
        return self._delete_root(receipt, constants.POSTS, post_id)

    def _finish(self, receipt: DeletionReceipt, admin: Actor) -> DeletionReceipt:
        if receipt.partial_failure:
            logger.warning(
                f"{receipt.root} {receipt.root_id} cascade by {admin.label} finished "
                f"with {len(receipt.errors)} error(s): {receipt.counts}"
            )
        else:
            logger.info(
                f"{receipt.root} {receipt.root_id} deleted by {admin.label}: "
                f"{receipt.counts}"
            )
        return receipt

    # Public operations

    def delete_group(
        self,
        group_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete a group with its members, posts, badges and reviews."""
        require_confirmation("group", confirm, confirmation_phrase)
        group = self.store.load(Group, group_id)
        receipt = DeletionReceipt("group", group_id)
        receipt.root_deleted = self._group_closure(receipt, group_id)
        if receipt.root_deleted:
            self._release_project(receipt, group)
        if receipt.root_deleted:
            self._notify_owner(
                receipt,
                Audience.user(group.admin_user_id, group.admin_email),
                "group_deleted_by_admin",
                "Group Deleted by Administrator",
                f'Your group "{group.name}" has been permanently deleted by an '
                "administrator. If you believe this was done in error, please "
                "contact support.",
            )
        return self._finish(receipt, admin)

    def delete_project(
        self,
        project_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete a project, its team group (if any) and its applications."""
        require_confirmation("project", confirm, confirmation_phrase)
        project = self.store.load(Project, project_id)
        receipt = DeletionReceipt("project", project_id)
        receipt.root_deleted = self._project_closure(receipt, project)
        if receipt.root_deleted:
            owner_id = project.owner_user_id
            self._notify_owner(
                receipt,
                Audience.user(
                    None if owner_id == "unknown" else owner_id, project.contact_email
                ),
                "project_deleted",
                "Project Deleted by Admin",
                f'Your project "{project.title}" has been permanently deleted by an '
                "administrator. If you believe this was done in error, please "
                "contact support.",
            )
        return self._finish(receipt, admin)

    def delete_event(
        self,
        event_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete an event and its registrations."""
        require_confirmation("event", confirm, confirmation_phrase)
        event = self.store.load(Event, event_id)
        receipt = DeletionReceipt("event", event_id)
        for step in EVENT_CHILDREN:
            self._delete_children(receipt, step, event_id)
        receipt.root_deleted = self._delete_root(receipt, constants.EVENTS, event_id)
        if receipt.root_deleted:
            owner_id = event.owner_user_id
            self._notify_owner(
                receipt,
                Audience.user(
                    None if owner_id == "unknown" else owner_id, event.organizer_email
                ),
                "event_deleted",
                "Event Deleted by Admin",
                f'Your event "{event.title}" has been permanently deleted by an '
                "administrator. If you believe this was done in error, please "
                "contact support.",
            )
        return self._finish(receipt, admin)

    def delete_company(
        self,
        company_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete a company with its members, posts and comments."""
        require_confirmation("company", confirm, confirmation_phrase)
        company = self.store.load(Company, company_id)
        receipt = DeletionReceipt("company", company_id)
        receipt.root_deleted = self._company_closure(receipt, company_id)
        if receipt.root_deleted and (company.admin_user_id or company.admin_email):
            self._notify_owner(
                receipt,
                Audience.user(company.admin_user_id, company.admin_email),
                "company_deleted_by_admin",
                "Company Page Deleted by Administrator",
                f'Your company page "{company.name}" has been permanently deleted '
                "by an administrator. If you believe this was done in error, "
                "please contact support.",
            )
        return self._finish(receipt, admin)

    def delete_post(
        self,
        post_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete a community post and all of its replies."""
        require_confirmation("post", confirm, confirmation_phrase)
        post = Post.from_dict(post_id, self.store.get(constants.POSTS, post_id))
        receipt = DeletionReceipt("post", post_id)
        receipt.root_deleted = self._post_closure(receipt, post_id)
        if receipt.root_deleted and post.author_id:
            self._notify_owner(
                receipt,
                Audience.user(post.author_id),
                "post_deleted_by_admin",
                "Post Removed by Administrator",
                f'Your post "{post.title or "Untitled Post"}" has been removed by '
                "an administrator.",
            )
        return self._finish(receipt, admin)

    def _delete_every(
        self,
        label: str,
        collection: str,
        closure: Callable[[DeletionReceipt, str], bool],
        admin: Actor,
    ) -> DeletionReceipt:
        receipt = DeletionReceipt(label, "*")
        roots = [s.id for s in self.store.query(collection) if s.exists]
        for root_id in roots:
            if closure(receipt, root_id):
                receipt.record(label, 1)
        receipt.root_deleted = receipt.counts.get(label, 0) == len(roots)
        return self._finish(receipt, admin)

    def delete_all_groups(
        self, admin: Actor, confirm: bool, confirmation_phrase: Optional[str]
    ) -> DeletionReceipt:
        """Delete every group on the platform."""
        require_confirmation("all_groups", confirm, confirmation_phrase)
        return self._delete_every(
            "groups", constants.GROUPS, self._detached_group_closure, admin
        )

    def delete_all_posts(
        self, admin: Actor, confirm: bool, confirmation_phrase: Optional[str]
    ) -> DeletionReceipt:
        """Delete every community post."""
        require_confirmation("all_posts", confirm, confirmation_phrase)
        return self._delete_every("posts", constants.POSTS, self._post_closure, admin)

    def delete_all_companies(
        self, admin: Actor, confirm: bool, confirmation_phrase: Optional[str]
    ) -> DeletionReceipt:
        """Delete every company page."""
        require_confirmation("all_companies", confirm, confirmation_phrase)
        return self._delete_every(
            "companies", constants.COMPANIES, self._company_closure, admin
        )

"""Group and company membership operations.

Every change to a membership row moves the parent's ``memberCount`` with
``firestore.Increment`` in the same transaction, so concurrent joins,
leaves and approvals never lose an update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from talenthub.core import constants
from talenthub.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talenthub.notifications import Audience, NotificationEvent, resolve_display_name
from talenthub.store.models import (
    TERMINAL_APPLICATION_STATUSES,
    Application,
    ApplicationStatus,
    Company,
    CompanyMember,
    CompanyStatus,
    Group,
    GroupMember,
    GroupStatus,
    Member,
    MemberRole,
    MemberStatus,
    Project,
)

from .results import TransitionResult
from .validation import membership_id

if TYPE_CHECKING:
    from google.cloud.firestore_v1.transaction import Transaction

    from talenthub.auth.models import Actor
    from talenthub.notifications import EmailDispatcher, NotificationFanout
    from talenthub.store.services import EntityStore

logger = logging.getLogger(__name__)

PARENTS: dict[str, tuple[type[Any], type[Member], str]] = {
    "group": (Group, GroupMember, "groupId"),
    "company": (Company, CompanyMember, "companyId"),
}


def find_membership(
    store: EntityStore,
    model: type[Member],
    parent_field: str,
    parent_id: str,
    user_id: Optional[str],
    email: Optional[str] = None,
) -> Optional[Member]:
    """Return the user's membership row, preferring an active one."""
    rows: list[Member] = []
    if user_id:
        rows = store.query_models(
            model, (parent_field, "==", parent_id), ("userId", "==", user_id)
        )
    if not rows and email:
        rows = store.query_models(
            model, (parent_field, "==", parent_id), ("userEmail", "==", email)
        )
    if not rows:
        return None
    active = [m for m in rows if m.is_active]
    return active[0] if active else rows[0]


def system_post(parent_field: str, parent_id: str, title: str, content: str) -> dict:
    """Build an announcement post authored by the system."""
    return {
        parent_field: parent_id,
        "authorId": "system",
        "authorName": "System Announcement",
        "authorEmail": "system@platform.local",
        "title": title,
        "content": content,
        "type": "announcement",
        "isSystemPost": True,
        "likes": [],
        "likeCount": 0,
        "commentCount": 0,
        "replyCount": 0,
        "createdAt": firestore.SERVER_TIMESTAMP,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }


class MembershipService:
    """Applications, joins, leaves and removals for groups and companies."""

    def __init__(
        self,
        store: EntityStore,
        fanout: NotificationFanout,
        dispatcher: EmailDispatcher,
    ) -> None:
        self.store = store
        self.fanout = fanout
        self.dispatcher = dispatcher

    # Project applications

    def approve_application(self, application_id: str, actor: Actor) -> TransitionResult:
        """Accept an applicant into the project's group."""
        store = self.store
        application = store.load(Application, application_id)
        project = store.load(Project, application.project_id)
        if not project.group_id:
            raise ConflictError(f"Project {project.id} has no team group yet.")
        existing = find_membership(
            store,
            GroupMember,
            "groupId",
            project.group_id,
            application.applicant_user_id,
            application.applicant_email,
        )

        def _approve(transaction: Transaction) -> Group:
            current = store.read_model(transaction, Application, application_id)
            if current.status in TERMINAL_APPLICATION_STATUSES:
                raise ConflictError(
                    f"Application {application_id} is already {current.status.value}."
                )
            group = store.read_model(transaction, Group, project.group_id)
            _require_group_admin(group, actor)
            if group.status is not GroupStatus.ACTIVE:
                raise ConflictError(f"Group {group.id} is {group.status.value}.")
            member_id, active = _read_membership(
                transaction,
                store,
                GroupMember,
                existing,
                membership_id(
                    group.id,
                    application.applicant_user_id,
                    application.applicant_email,
                ),
            )
            if active:
                raise ConflictError("The applicant is already a member of this group.")
            if group.member_count >= group.max_members:
                raise ConflictError(f"Group {group.id} is full.")

            member_ref = store.ref(constants.GROUP_MEMBERS, member_id)
            transaction.update(
                store.ref(constants.PROJECT_APPLICATIONS, application_id),
                {
                    "status": ApplicationStatus.APPROVED.value,
                    "approvedAt": firestore.SERVER_TIMESTAMP,
                    "approvedBy": actor.label,
                    "groupId": group.id,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.set(
                member_ref,
                {
                    "groupId": group.id,
                    "userId": application.applicant_user_id,
                    "userEmail": application.applicant_email,
                    "userName": application.applicant_name,
                    "role": MemberRole.MEMBER.value,
                    "status": MemberStatus.ACTIVE.value,
                    "projectRole": application.project_role,
                    "addedBy": actor.label,
                    "applicationId": application_id,
                    "joinedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.GROUPS, group.id),
                {
                    "memberCount": firestore.Increment(1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.set(
                store.ref(constants.GROUP_POSTS),
                system_post(
                    "groupId",
                    group.id,
                    "👋 New Team Member",
                    f"{_applicant_name(application)} has joined the team as "
                    f"{application.project_role}.",
                ),
            )
            return group

        group = store.run_transaction(_approve)
        logger.info(
            f"Application {application_id} approved; "
            f"{application.applicant_email} joined group {group.id}"
        )

        result = TransitionResult("approve_application", application_id, group_id=group.id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="group_member_joined",
                title="New Team Member",
                message=(
                    f"{_applicant_name(application)} joined {group.name} as "
                    f"{application.project_role}."
                ),
                related_ids={"groupId": group.id, "projectId": project.id},
            ),
            Audience.group(group.id),
            exclude_user_id=application.applicant_user_id or None,
            exclude_email=application.applicant_email or None,
        )
        result.notifications.merge(
            self.fanout.notify(
                NotificationEvent(
                    type="application_approved",
                    title="Application Approved! 🎉",
                    message=(
                        f'Your application to "{project.title}" has been approved. '
                        "Welcome to the team!"
                    ),
                    related_ids={
                        "groupId": group.id,
                        "projectId": project.id,
                        "applicationId": application_id,
                    },
                ),
                Audience.user(
                    application.applicant_user_id, application.applicant_email
                ),
            )
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_APPLICATION_APPROVED,
            {
                "applicationData": application.to_payload(),
                "projectData": {**project.to_payload(), "groupId": group.id},
            },
        )
        return result

    def reject_application(
        self, application_id: str, actor: Actor, reason: Optional[str] = None
    ) -> TransitionResult:
        """Decline an application."""
        store = self.store
        reason = (reason or "").strip()
        application = store.load(Application, application_id)
        project = store.load(Project, application.project_id)

        def _reject(transaction: Transaction) -> None:
            current = store.read_model(transaction, Application, application_id)
            if current.status in TERMINAL_APPLICATION_STATUSES:
                raise ConflictError(
                    f"Application {application_id} is already {current.status.value}."
                )
            if project.group_id:
                group = store.read_model(transaction, Group, project.group_id)
                _require_group_admin(group, actor)
            elif not actor.is_admin:
                raise PermissionDeniedError("Only administrators can do this.")
            transaction.update(
                store.ref(constants.PROJECT_APPLICATIONS, application_id),
                {
                    "status": ApplicationStatus.REJECTED.value,
                    "rejectedAt": firestore.SERVER_TIMESTAMP,
                    "rejectedBy": actor.label,
                    "rejectionReason": reason,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )

        store.run_transaction(_reject)
        logger.info(f"Application {application_id} rejected by {actor.label}")

        result = TransitionResult("reject_application", application_id)
        message = f'Your application to "{project.title}" was not accepted this time.'
        if reason:
            message += f"\n\nReason: {reason}"
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="application_rejected",
                title="Application Update",
                message=message,
                related_ids={"projectId": project.id, "applicationId": application_id},
            ),
            Audience.user(application.applicant_user_id, application.applicant_email),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_APPLICATION_REJECTED,
            {
                "applicationData": {
                    **application.to_payload(),
                    "rejectionReason": reason,
                },
                "projectData": project.to_payload(),
            },
        )
        return result

    def remove_group_member(
        self, group_id: str, user_id: str, actor: Actor
    ) -> TransitionResult:
        """Remove a member from a group. The group admin cannot be removed."""
        store = self.store
        member = find_membership(store, GroupMember, "groupId", group_id, user_id)
        if member is None or not member.is_active:
            raise NotFoundError(f"User {user_id} is not a member of group {group_id}.")

        def _remove(transaction: Transaction) -> Group:
            group = store.read_model(transaction, Group, group_id)
            _require_group_admin(group, actor)
            current = store.read_model(transaction, GroupMember, member.id)
            if not current.is_active:
                raise ConflictError(f"User {user_id} has already left the group.")
            if current.is_admin:
                raise ConflictError("The group admin cannot be removed.")
            _deactivate(transaction, store, constants.GROUP_MEMBERS, member.id, actor)
            transaction.update(
                store.ref(constants.GROUPS, group_id),
                {
                    "memberCount": firestore.Increment(-1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return group

        group = store.run_transaction(_remove)
        logger.info(f"User {user_id} removed from group {group_id} by {actor.label}")

        result = TransitionResult("remove_group_member", member.id, group_id=group_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="group_member_removed",
                title="Removed from Team",
                message=f"You have been removed from {group.name}.",
                related_ids={"groupId": group_id},
            ),
            Audience.user(member.user_id, member.user_email),
        )
        return result

    # Companies

    def join_company(self, company_id: str, actor: Actor) -> TransitionResult:
        """Add the actor to a company."""
        store = self.store
        existing = find_membership(
            store, CompanyMember, "companyId", company_id, actor.user_id, actor.email
        )

        def _join(transaction: Transaction) -> Company:
            company = store.read_model(transaction, Company, company_id)
            if company.is_ended:
                raise ConflictError(f"{company.name} has ended and cannot be joined.")
            member_id, active = _read_membership(
                transaction,
                store,
                CompanyMember,
                existing,
                membership_id(company_id, actor.user_id, actor.email),
            )
            if active:
                raise ConflictError(f"You are already a member of {company.name}.")
            member_ref = store.ref(constants.COMPANY_MEMBERS, member_id)
            transaction.set(
                member_ref,
                {
                    "companyId": company_id,
                    "userId": actor.user_id,
                    "userEmail": actor.email,
                    "userName": actor.name,
                    "role": MemberRole.MEMBER.value,
                    "status": MemberStatus.ACTIVE.value,
                    "joinedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.COMPANIES, company_id),
                {
                    "memberCount": firestore.Increment(1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return company

        company = store.run_transaction(_join)
        logger.info(f"{actor.label} joined company {company_id}")

        result = TransitionResult("join_company", company_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="company_member_joined",
                title="New Company Member",
                message=f"{actor.name} joined {company.name}.",
                related_ids={"companyId": company_id},
            ),
            Audience.company(company_id),
            exclude_user_id=actor.user_id,
        )
        return result

    def leave_company(self, company_id: str, actor: Actor) -> TransitionResult:
        """Remove the actor from a company.

        Company admins may only leave once the company has ended.
        """
        store = self.store
        member = find_membership(
            store, CompanyMember, "companyId", company_id, actor.user_id, actor.email
        )
        if member is None or not member.is_active:
            raise NotFoundError(f"You are not a member of company {company_id}.")

        def _leave(transaction: Transaction) -> Company:
            company = store.read_model(transaction, Company, company_id)
            current = store.read_model(transaction, CompanyMember, member.id)
            if not current.is_active:
                raise ConflictError("You have already left this company.")
            if current.is_admin and not company.is_ended:
                raise ConflictError(
                    "Company admins cannot leave an active company. "
                    "End the company first."
                )
            _deactivate(transaction, store, constants.COMPANY_MEMBERS, member.id, actor)
            transaction.update(
                store.ref(constants.COMPANIES, company_id),
                {
                    "memberCount": firestore.Increment(-1),
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return company

        store.run_transaction(_leave)
        logger.info(f"{actor.label} left company {company_id}")
        return TransitionResult("leave_company", company_id)

    def end_company(self, company_id: str, actor: Actor) -> TransitionResult:
        """Permanently end a company and tell its members."""
        store = self.store
        member = find_membership(
            store, CompanyMember, "companyId", company_id, actor.user_id, actor.email
        )

        def _end(transaction: Transaction) -> Company:
            company = store.read_model(transaction, Company, company_id)
            if company.is_ended:
                raise ConflictError(f"{company.name} has already ended.")
            is_company_admin = (member is not None and member.is_admin) or (
                company.admin_user_id == actor.user_id
            )
            if not (is_company_admin or actor.is_admin):
                raise PermissionDeniedError("Only company admins can end the company.")
            transaction.update(
                store.ref(constants.COMPANIES, company_id),
                {
                    "status": CompanyStatus.ENDED.value,
                    "endedAt": firestore.SERVER_TIMESTAMP,
                    "endedBy": actor.user_id,
                    "endedByName": actor.name,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.set(
                store.ref(constants.COMPANY_POSTS),
                {
                    **system_post(
                        "companyId",
                        company_id,
                        "🚨 Company Operations Ended",
                        f"This company has been permanently ended by {actor.name}."
                        "\n\nAll company operations have ceased. Members can now "
                        "leave the company.",
                    ),
                    "companyName": company.name,
                },
            )
            return company

        company = store.run_transaction(_end)
        logger.info(f"Company {company_id} ended by {actor.label}")

        result = TransitionResult("end_company", company_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="company_ended",
                title="Company Ended",
                message=(
                    f'"{company.name}" has been ended by {actor.name}. '
                    "You can now leave the company."
                ),
                related_ids={"companyId": company_id},
            ),
            Audience.company(company_id),
            exclude_user_id=actor.user_id,
        )
        return result

    # Counters

    def reconcile_member_count(self, kind: str, parent_id: str) -> dict[str, int]:
        """Recompute ``memberCount`` from the live active membership rows."""
        if kind not in PARENTS:
            raise ValidationError(f"Unknown membership kind: {kind}")
        parent_model, member_model, parent_field = PARENTS[kind]
        parent = self.store.load(parent_model, parent_id)
        live = sum(
            1
            for m in self.store.query_models(
                member_model, (parent_field, "==", parent_id)
            )
            if m.is_active
        )
        if live != parent.member_count:
            logger.warning(
                f"{kind} {parent_id} memberCount drifted: "
                f"stored {parent.member_count}, live {live}"
            )
            self.store.update(parent_model.collection, parent_id, {"memberCount": live})
        return {"previous": parent.member_count, "current": live}


def _require_group_admin(group: Group, actor: Actor) -> None:
    if actor.is_admin or actor.matches(group.admin_user_id, group.admin_email):
        return
    raise PermissionDeniedError("Only the group admin can manage this group.")


def _read_membership(
    transaction: Transaction,
    store: EntityStore,
    model: type[Member],
    existing: Optional[Member],
    default_id: str,
) -> tuple[str, bool]:
    """Re-read a user's membership rows inside ``transaction``.

    ``existing`` comes from a query made before the transaction and may be
    stale, so both it and the deterministic row are read again here. Returns
    the row id to write and whether any of those rows is active.
    """
    member_id = existing.id if existing is not None else default_id
    active = False
    for doc_id in dict.fromkeys((member_id, default_id)):
        data = store.read(transaction, model.collection, doc_id)
        if data is not None and model.from_dict(doc_id, data).is_active:
            active = True
    return member_id, active


def _deactivate(
    transaction: Transaction,
    store: EntityStore,
    collection: str,
    member_id: str,
    actor: Actor,
) -> None:
    transaction.update(
        store.ref(collection, member_id),
        {
            "status": MemberStatus.REMOVED.value,
            "removedAt": firestore.SERVER_TIMESTAMP,
            "removedBy": actor.label,
        },
    )


def _applicant_name(application: Application) -> str:
    return resolve_display_name(
        {"displayName": application.applicant_name, "email": application.applicant_email}
    )

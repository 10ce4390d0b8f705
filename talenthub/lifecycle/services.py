"""State machines for projects, events and completion requests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from talenthub.core import constants
from talenthub.errors import ConflictError, NotFoundError, PermissionDeniedError
from talenthub.notifications import Audience, NotificationEvent
from talenthub.store.models import (
    DEFAULT_COMPLETION_STATUS,
    TERMINAL_COMPLETION_STATUSES,
    TERMINAL_EVENT_STATUSES,
    TERMINAL_PROJECT_STATUSES,
    CompletionRequest,
    CompletionStatus,
    Event,
    EventStatus,
    Group,
    GroupMember,
    GroupStatus,
    MemberRole,
    MemberStatus,
    Project,
    ProjectStatus,
)

from .results import TransitionResult
from .validation import membership_id, require_reason, validate_evaluations

if TYPE_CHECKING:
    from google.cloud.firestore_v1.transaction import Transaction

    from talenthub.auth.models import Actor
    from talenthub.cascade.receipts import DeletionReceipt
    from talenthub.cascade.services import CascadeDeletionEngine
    from talenthub.notifications import EmailDispatcher, NotificationFanout
    from talenthub.store.services import EntityStore

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """Drive projects, events and completion requests through their states.

    Each transition runs its reads, terminal-state check and writes in one
    Firestore transaction. Only after it commits are notifications written,
    and only after that is the email relay called.
    """

    def __init__(
        self,
        store: EntityStore,
        fanout: NotificationFanout,
        dispatcher: EmailDispatcher,
        cascade: Optional[CascadeDeletionEngine] = None,
    ) -> None:
        self.store = store
        self.fanout = fanout
        self.dispatcher = dispatcher
        self.cascade = cascade

    # Projects

    def approve_project(self, project_id: str, admin: Actor) -> TransitionResult:
        """Approve a project and create its team group with the owner as admin."""
        store = self.store

        def _approve(transaction: Transaction) -> tuple[Project, str]:
            project = store.read_model(transaction, Project, project_id)
            if project.status in TERMINAL_PROJECT_STATUSES:
                raise ConflictError(
                    f"Project {project_id} is already {project.status.value}."
                )

            group_ref = store.ref(constants.GROUPS)
            owner_id = _known(project.owner_user_id)
            transaction.set(group_ref, _group_fields(project, admin, owner_id))
            transaction.set(
                store.ref(
                    constants.GROUP_MEMBERS,
                    membership_id(group_ref.id, owner_id, project.contact_email),
                ),
                {
                    "groupId": group_ref.id,
                    "userId": owner_id,
                    "userEmail": project.contact_email,
                    "userName": project.contact_name,
                    "role": MemberRole.ADMIN.value,
                    "status": MemberStatus.ACTIVE.value,
                    "projectRole": constants.OWNER_PROJECT_ROLE,
                    "addedBy": "auto_creation",
                    "joinedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.PROJECTS, project_id),
                {
                    "status": ProjectStatus.APPROVED.value,
                    "approvedAt": firestore.SERVER_TIMESTAMP,
                    "approvedBy": admin.label,
                    "approvedById": admin.user_id,
                    "groupId": group_ref.id,
                    "groupCreated": True,
                    "projectOwnerCanManageApplications": True,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return project, group_ref.id

        project, group_id = store.run_transaction(_approve)
        logger.info(f"Project {project_id} approved by {admin.label}; group {group_id}")

        result = TransitionResult("approve_project", project_id, group_id=group_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="project_approved",
                title="Project Approved & Team Created! 🎉",
                message=(
                    f'Your project "{project.title}" has been approved and a team '
                    "group has been created for you."
                ),
                related_ids={"projectId": project_id, "groupId": group_id},
                action_url=f"/groups/{group_id}",
            ),
            _owner(project),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_PROJECT_APPROVED,
            {
                "projectData": {
                    **project.to_payload(),
                    "groupId": group_id,
                    "approvedBy": admin.label,
                }
            },
        )
        return result

    def reject_project(
        self, project_id: str, admin: Actor, reason: Optional[str]
    ) -> TransitionResult:
        """Reject a project with a mandatory reason."""
        reason = require_reason(reason)
        store = self.store

        def _reject(transaction: Transaction) -> Project:
            project = store.read_model(transaction, Project, project_id)
            if project.status in TERMINAL_PROJECT_STATUSES:
                raise ConflictError(
                    f"Project {project_id} is already {project.status.value}."
                )
            transaction.update(
                store.ref(constants.PROJECTS, project_id),
                {
                    "status": ProjectStatus.REJECTED.value,
                    "rejectionReason": reason,
                    "moderationNote": reason,
                    "rejectedAt": firestore.SERVER_TIMESTAMP,
                    "rejectedBy": admin.label,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return project

        project = store.run_transaction(_reject)
        logger.info(f"Project {project_id} rejected by {admin.label}")

        result = TransitionResult("reject_project", project_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="project_rejected",
                title="Project Submission Needs Revision ⚠️",
                message=(
                    f'Your project "{project.title}" requires changes before '
                    f"approval.\n\nReason: {reason}\n\nPlease address these "
                    "issues and resubmit your project."
                ),
                related_ids={"projectId": project_id},
                priority="high",
            ),
            _owner(project),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_PROJECT_REJECTED,
            {"projectData": {**project.to_payload(), "rejectionReason": reason}},
        )
        return result

    def delete_project(
        self,
        project_id: str,
        admin: Actor,
        confirm: bool,
        confirmation_phrase: Optional[str],
    ) -> DeletionReceipt:
        """Delete a project and everything hanging off it."""
        if self.cascade is None:
            raise RuntimeError("LifecycleEngine was built without a cascade engine.")
        return self.cascade.delete_project(
            project_id, admin, confirm, confirmation_phrase
        )

    # Events

    def approve_event(self, event_id: str, admin: Actor) -> TransitionResult:
        """Publish an event. Event approval never creates a group."""
        store = self.store

        def _approve(transaction: Transaction) -> Event:
            event = store.read_model(transaction, Event, event_id)
            if event.status in TERMINAL_EVENT_STATUSES:
                raise ConflictError(f"Event {event_id} is already {event.status.value}.")
            transaction.update(
                store.ref(constants.EVENTS, event_id),
                {
                    "status": EventStatus.APPROVED.value,
                    "approvedAt": firestore.SERVER_TIMESTAMP,
                    "approvedBy": admin.label,
                    "isActive": True,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return event

        event = store.run_transaction(_approve)
        logger.info(f"Event {event_id} approved by {admin.label}")

        result = TransitionResult("approve_event", event_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="event_approved",
                title="Event Approved! 🎉",
                message=(
                    f'Your event "{event.title}" has been approved and is now live '
                    "on the events page."
                ),
                related_ids={"eventId": event_id},
            ),
            Audience.user(_known(event.owner_user_id), event.organizer_email),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_EVENT_PUBLISHED, {"eventData": event.to_payload()}
        )
        return result

    def reject_event(
        self, event_id: str, admin: Actor, reason: Optional[str]
    ) -> TransitionResult:
        """Reject an event with a mandatory reason."""
        reason = require_reason(reason)
        store = self.store

        def _reject(transaction: Transaction) -> Event:
            event = store.read_model(transaction, Event, event_id)
            if event.status in TERMINAL_EVENT_STATUSES:
                raise ConflictError(f"Event {event_id} is already {event.status.value}.")
            transaction.update(
                store.ref(constants.EVENTS, event_id),
                {
                    "status": EventStatus.REJECTED.value,
                    "rejectionReason": reason,
                    "rejectedAt": firestore.SERVER_TIMESTAMP,
                    "rejectedBy": admin.label,
                    "isActive": False,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return event

        event = store.run_transaction(_reject)
        logger.info(f"Event {event_id} rejected by {admin.label}")

        result = TransitionResult("reject_event", event_id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="event_rejected",
                title="Event Submission Needs Revision ⚠️",
                message=(
                    f'Your event "{event.title}" requires changes before approval.'
                    f"\n\nReason: {reason}\n\nPlease address these issues and "
                    "resubmit your event."
                ),
                related_ids={"eventId": event_id},
                priority="high",
            ),
            Audience.user(_known(event.owner_user_id), event.organizer_email),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_EVENT_REJECTED,
            {"eventData": {**event.to_payload(), "rejectionReason": reason}},
        )
        return result

    # Completion requests

    def submit_completion(
        self, group_id: str, actor: Actor, summary: str = ""
    ) -> TransitionResult:
        """Open a completion review for a group, at most one at a time."""
        store = self.store
        pending = store.query_models(
            CompletionRequest,
            ("groupId", "==", group_id),
            ("status", "==", CompletionStatus.PENDING_ADMIN_APPROVAL.value),
        )
        if pending:
            raise ConflictError(
                f"Group {group_id} already has a pending completion request."
            )

        def _submit(transaction: Transaction) -> tuple[Group, str]:
            group = store.read_model(transaction, Group, group_id)
            if not actor.matches(group.admin_user_id, group.admin_email):
                raise PermissionDeniedError(
                    "Only the group admin can submit the project for review."
                )
            if group.status is not GroupStatus.ACTIVE:
                raise ConflictError(f"Group {group_id} is {group.status.value}.")
            request_ref = store.ref(constants.COMPLETION_REQUESTS)
            transaction.set(
                request_ref,
                {
                    "groupId": group_id,
                    "projectId": group.project_id,
                    "projectTitle": group.name,
                    "adminId": group.admin_user_id,
                    "adminEmail": group.admin_email,
                    "adminName": group.admin_name,
                    "summary": summary,
                    "status": CompletionStatus.PENDING_ADMIN_APPROVAL.value,
                    "adminApproval": {"approved": False},
                    "createdAt": firestore.SERVER_TIMESTAMP,
                },
            )
            completion = {
                **group.completion_status,
                "isReadyForCompletion": True,
                "submittedForReview": True,
                "completionFormSubmittedAt": firestore.SERVER_TIMESTAMP,
            }
            transaction.update(
                store.ref(constants.GROUPS, group_id),
                {
                    "completionStatus": completion,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return group, request_ref.id

        group, request_id = store.run_transaction(_submit)
        logger.info(f"Completion request {request_id} opened for group {group_id}")
        result = TransitionResult(
            "submit_completion",
            request_id,
            group_id=group_id,
            details={"projectTitle": group.name},
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_SUBMITTED_FOR_REVIEW,
            {
                "projectData": {
                    "projectTitle": group.name,
                    "contactEmail": group.admin_email,
                    "contactName": group.admin_name,
                    "groupId": group_id,
                    "requestId": request_id,
                    "summary": summary,
                }
            },
        )
        return result

    def approve_completion(self, request_id: str, admin: Actor) -> TransitionResult:
        """Approve a completion review and open badge assignment."""
        store = self.store

        def _approve(transaction: Transaction) -> tuple[CompletionRequest, Group]:
            request = store.read_model(transaction, CompletionRequest, request_id)
            _check_pending(request)
            group = _read_group(store, transaction, request)
            transaction.update(
                store.ref(constants.COMPLETION_REQUESTS, request_id),
                {
                    "status": CompletionStatus.ADMIN_APPROVED.value,
                    "adminApproval": {
                        **request.admin_approval,
                        "approved": True,
                        "approvedAt": firestore.SERVER_TIMESTAMP,
                        "approvedBy": admin.label,
                        "rejectionReason": None,
                    },
                    "phase": "badge_assignment",
                    "badgeAssignmentStatus": "ready",
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.GROUPS, group.id),
                {
                    "status": GroupStatus.READY_FOR_BADGE_ASSIGNMENT.value,
                    "completionStatus": {
                        **group.completion_status,
                        "adminApproved": True,
                        "adminApprovedAt": firestore.SERVER_TIMESTAMP,
                    },
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return request, group

        request, group = store.run_transaction(_approve)
        logger.info(f"Completion request {request_id} approved by {admin.label}")

        result = TransitionResult("approve_completion", request_id, group_id=group.id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="project_review_approved",
                title="Project Review Approved! 🎉",
                message=(
                    f'Your project "{request.project_title}" has been approved. '
                    "You can now assign badges to your team members."
                ),
                related_ids={
                    "groupId": group.id,
                    "projectId": request.project_id or "",
                    "completionRequestId": request_id,
                },
            ),
            _group_admin(request, group),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_REVIEW_APPROVED,
            {"completionData": _completion_payload(request, group)},
        )
        return result

    def reject_completion(
        self, request_id: str, admin: Actor, reason: Optional[str]
    ) -> TransitionResult:
        """Reject a completion review and put the group back to active."""
        reason = require_reason(reason)
        store = self.store

        def _reject(transaction: Transaction) -> tuple[CompletionRequest, Group]:
            request = store.read_model(transaction, CompletionRequest, request_id)
            _check_pending(request)
            group = _read_group(store, transaction, request)
            transaction.update(
                store.ref(constants.COMPLETION_REQUESTS, request_id),
                {
                    "status": CompletionStatus.ADMIN_REJECTED.value,
                    "adminApproval": {
                        **request.admin_approval,
                        "approved": False,
                        "rejectedAt": firestore.SERVER_TIMESTAMP,
                        "rejectedBy": admin.label,
                        "rejectionReason": reason,
                    },
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.GROUPS, group.id),
                {
                    "status": GroupStatus.ACTIVE.value,
                    "completionStatus": {
                        **group.completion_status,
                        "isReadyForCompletion": False,
                        "submittedForReview": False,
                        "adminApproved": False,
                        "completionFormSubmittedAt": None,
                    },
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return request, group

        request, group = store.run_transaction(_reject)
        logger.info(f"Completion request {request_id} rejected by {admin.label}")

        result = TransitionResult("reject_completion", request_id, group_id=group.id)
        result.notifications = self.fanout.notify(
            NotificationEvent(
                type="project_review_rejected",
                title="Project Review Needs Revision ⚠️",
                message=(
                    f'Your project "{request.project_title}" review requires '
                    f"changes before approval.\n\nReason: {reason}\n\nPlease "
                    "address these issues and resubmit for review."
                ),
                related_ids={
                    "groupId": group.id,
                    "projectId": request.project_id or "",
                    "completionRequestId": request_id,
                },
                priority="high",
            ),
            _group_admin(request, group),
        )
        result.email = self.dispatcher.dispatch(
            constants.EMAIL_REVIEW_REJECTED,
            {
                "completionData": {
                    **_completion_payload(request, group),
                    "rejectionReason": reason,
                }
            },
        )
        return result

    def complete_project(
        self, group_id: str, actor: Actor, evaluations: Any = None
    ) -> TransitionResult:
        """Award badges and close out a group whose review was approved.

        The group must be ``ready_for_badge_assignment``. Every active team
        member other than the group admin needs an evaluation; a group with
        no such members completes as a solo project. Badges, the owner's
        certificate and the completed request, group and project are written
        in one transaction. Badge notices and emails follow the commit.
        """
        store = self.store
        group = store.load(Group, group_id)
        if not (
            actor.is_admin or actor.matches(group.admin_user_id, group.admin_email)
        ):
            raise PermissionDeniedError(
                "Only the group admin can complete the project."
            )
        team = [
            m
            for m in store.query_models(GroupMember, ("groupId", "==", group_id))
            if m.is_active and not m.is_admin
        ]
        members = validate_evaluations(evaluations, team)
        approved = store.query_models(
            CompletionRequest,
            ("groupId", "==", group_id),
            ("status", "==", CompletionStatus.ADMIN_APPROVED.value),
        )
        if not approved:
            raise ConflictError(f"Group {group_id} has no approved completion review.")
        request_id = approved[0].id
        solo = not members
        team_size = len(members) + 1

        def _complete(transaction: Transaction) -> tuple[Group, list[str], str]:
            current = store.read_model(transaction, Group, group_id)
            if current.status is not GroupStatus.READY_FOR_BADGE_ASSIGNMENT:
                raise ConflictError(f"Group {group_id} is {current.status.value}.")
            request = store.read_model(transaction, CompletionRequest, request_id)
            if request.status is not CompletionStatus.ADMIN_APPROVED:
                raise ConflictError(
                    f"Completion request {request_id} is {request.status.value}."
                )
            project = (
                store.read(transaction, constants.PROJECTS, current.project_id)
                if current.project_id
                else None
            )

            badge_ids = []
            for member in members:
                badge_ref = store.ref(constants.MEMBER_BADGES)
                transaction.set(
                    badge_ref,
                    {
                        **member,
                        "projectTitle": current.name,
                        "groupId": group_id,
                        "originalProjectId": current.project_id,
                        "awardedBy": actor.label,
                        "awardedByName": actor.name,
                        "teamSize": team_size,
                        "awardedAt": firestore.SERVER_TIMESTAMP,
                        "projectCompletedAt": firestore.SERVER_TIMESTAMP,
                    },
                )
                badge_ids.append(badge_ref.id)

            certificate_ref = store.ref(constants.CERTIFICATES)
            transaction.set(
                certificate_ref,
                {
                    "type": "project_owner",
                    "recipientEmail": current.admin_email,
                    "recipientName": current.admin_name,
                    "recipientId": current.admin_user_id,
                    "projectTitle": current.name,
                    "groupId": group_id,
                    "generatedAt": firestore.SERVER_TIMESTAMP,
                    "certificateData": {
                        "projectDescription": current.raw.get("projectDescription")
                        or "",
                        "teamSize": team_size,
                        "badgesAwarded": len(badge_ids),
                        "originalProjectId": current.project_id,
                        "isSoloProject": solo,
                    },
                },
            )
            transaction.update(
                store.ref(constants.COMPLETION_REQUESTS, request_id),
                {
                    "status": CompletionStatus.COMPLETED.value,
                    "phase": "completed",
                    "evaluationForm": {
                        "memberEvaluations": members,
                        "submittedAt": firestore.SERVER_TIMESTAMP,
                    },
                    "finalCompletion": {
                        "completed": True,
                        "completedAt": firestore.SERVER_TIMESTAMP,
                        "certificatesGenerated": True,
                        "badgesAwarded": not solo,
                        "isSoloProject": solo,
                    },
                    "teamSize": team_size,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            transaction.update(
                store.ref(constants.GROUPS, group_id),
                {
                    "status": GroupStatus.COMPLETED.value,
                    "completionStatus": {
                        **current.completion_status,
                        "completedAt": firestore.SERVER_TIMESTAMP,
                        "certificatesGenerated": True,
                        "isSoloProject": solo,
                    },
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            if project is not None:
                transaction.update(
                    store.ref(constants.PROJECTS, current.project_id),
                    {
                        "status": ProjectStatus.COMPLETED.value,
                        "completedAt": firestore.SERVER_TIMESTAMP,
                        "completedBy": actor.label,
                        "isActive": False,
                        "availableForApplications": False,
                        "projectClosed": True,
                        "isSoloProject": solo,
                        "updatedAt": firestore.SERVER_TIMESTAMP,
                    },
                )
            return current, badge_ids, certificate_ref.id

        group, badge_ids, certificate_id = store.run_transaction(_complete)
        logger.info(
            f"Group {group_id} completed by {actor.label}: "
            f"{len(badge_ids)} badge(s), certificate {certificate_id}"
        )

        result = TransitionResult(
            "complete_project",
            request_id,
            group_id=group_id,
            details={
                "badgeIds": badge_ids,
                "certificateId": certificate_id,
                "isSoloProject": solo,
            },
        )
        for member, badge_id in zip(members, badge_ids):
            result.notifications.merge(
                self.fanout.notify(
                    NotificationEvent(
                        type="badge_awarded",
                        title="Badge Awarded! 🏆",
                        message=(
                            f"You've been awarded a {member['badgeCategory']} badge "
                            f"({member['badgeLevel']} level) for your contribution "
                            f'to "{group.name}".'
                        ),
                        related_ids={"groupId": group_id, "badgeId": badge_id},
                        priority="high",
                        extra={
                            "badgeCategory": member["badgeCategory"],
                            "badgeLevel": member["badgeLevel"],
                        },
                    ),
                    Audience.user(
                        member["memberId"], member["memberEmail"], member["memberName"]
                    ),
                )
            )
            result.emails.append(
                self.dispatcher.dispatch(
                    constants.EMAIL_BADGE_AWARDED,
                    {
                        "badgeData": {
                            "badgeId": badge_id,
                            "badgeCategory": member["badgeCategory"],
                            "badgeLevel": member["badgeLevel"],
                            "contribution": member["contribution"],
                            "skillsDisplayed": member["skillsDisplayed"],
                            "adminNotes": member["adminNotes"],
                        },
                        "memberData": {
                            "memberEmail": member["memberEmail"],
                            "memberName": member["memberName"],
                            "memberRole": member["role"],
                        },
                        "projectData": {
                            "projectTitle": group.name,
                            "contactName": group.admin_name,
                            "contactEmail": group.admin_email,
                            "teamSize": team_size,
                            "groupId": group_id,
                            "originalProjectId": group.project_id,
                        },
                    },
                )
            )
        return result


def _known(user_id: Optional[str]) -> str:
    """Treat the "unknown" placeholder as no user id."""
    return "" if not user_id or user_id == "unknown" else user_id


def _owner(project: Project) -> Audience:
    return Audience.user(
        _known(project.owner_user_id), project.contact_email, project.contact_name
    )


def _group_admin(request: CompletionRequest, group: Group) -> Audience:
    return Audience.user(
        request.admin_user_id or group.admin_user_id,
        request.admin_email or group.admin_email,
        request.admin_name,
    )


def _check_pending(request: CompletionRequest) -> None:
    if request.status in TERMINAL_COMPLETION_STATUSES:
        raise ConflictError(
            f"Completion request {request.id} is already {request.status.value}."
        )


def _read_group(
    store: EntityStore, transaction: Transaction, request: CompletionRequest
) -> Group:
    if not request.group_id:
        raise NotFoundError(f"Completion request {request.id} has no group.")
    return store.read_model(transaction, Group, request.group_id)


def _completion_payload(request: CompletionRequest, group: Group) -> dict[str, Any]:
    payload = request.to_payload()
    if not payload["adminEmail"]:
        payload["adminEmail"] = group.admin_email
    return payload


def _group_fields(project: Project, admin: Actor, owner_id: str) -> dict[str, Any]:
    """Sanitized group document for an approved project."""
    return {
        "projectTitle": project.title,
        "projectDescription": project.description,
        "originalProjectId": project.id,
        "projectId": project.id,
        "groupType": "project",
        "adminEmail": project.contact_email,
        "adminName": project.contact_name,
        "adminId": owner_id,
        "companyName": project.company_name,
        "status": GroupStatus.ACTIVE.value,
        "memberCount": 1,
        "maxMembers": constants.DEFAULT_MAX_MEMBERS,
        "createdBy": "admin_approval",
        "approvedBy": admin.label,
        "timeline": project.timeline,
        "budget": project.budget,
        "requiredSkills": project.required_skills,
        "experienceLevel": project.experience_level,
        "projectType": project.project_type,
        "completionStatus": dict(DEFAULT_COMPLETION_STATUS),
        "projectConnection": {
            "projectId": project.id,
            "projectTitle": project.title,
            "contactEmail": project.contact_email,
            "contactName": project.contact_name,
        },
        "settings": {
            "allowMemberPosts": True,
            "requireApprovalForApplications": True,
            "isPrivate": False,
        },
        "createdAt": firestore.SERVER_TIMESTAMP,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }


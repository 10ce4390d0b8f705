"""Tests for the group completion review workflow."""

from __future__ import annotations

from typing import Any

from talenthub.errors import ConflictError, PermissionDeniedError, ValidationError
from talenthub.lifecycle import LifecycleEngine
from talenthub.notifications import DispatchOutcome
from tests.conftest import ADMIN, FirestoreTestCase
from tests.helpers import make_actor, seed_group, seed_project


class CompletionReviewTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.engine = LifecycleEngine(self.store, self.fanout, self.dispatcher)
        seed_group(self.db, "g1", admin_id="owner_uid", projectId="p1")
        self.owner = make_actor("owner_uid")

    def _submit(self) -> str:
        return self.engine.submit_completion("g1", self.owner, "All done").entity_id

    def test_submit_opens_single_request(self) -> None:
        request_id = self._submit()

        request = self.doc("project_completion_requests", request_id)
        self.assertEqual(request["status"], "pending_admin_approval")
        self.assertEqual(request["groupId"], "g1")
        self.assertEqual(request["summary"], "All done")
        self.assertTrue(self.doc("groups", "g1")["completionStatus"]["submittedForReview"])

        with self.assertRaises(ConflictError):
            self._submit()
        self.assertEqual(len(self.docs("project_completion_requests")), 1)

    def test_submit_emails_group_admin(self) -> None:
        request_id = self._submit()

        key, payload = self.dispatcher.dispatch.call_args.args
        self.assertEqual(key, "send-project-submitted-for-review")
        project_data = payload["projectData"]
        self.assertEqual(project_data["contactEmail"], "owner_uid@example.com")
        self.assertEqual(project_data["requestId"], request_id)

    def test_only_group_admin_can_submit(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.engine.submit_completion("g1", make_actor("stranger"))
        self.assertEqual(self.docs("project_completion_requests"), [])

    def test_admin_matched_by_email(self) -> None:
        owner = make_actor("other_uid", email="OWNER_UID@example.com")
        result = self.engine.submit_completion("g1", owner)
        self.assertEqual(result.group_id, "g1")

    def test_approve_opens_badge_assignment(self) -> None:
        request_id = self._submit()

        result = self.engine.approve_completion(request_id, ADMIN)

        group = self.doc("groups", "g1")
        self.assertEqual(group["status"], "ready_for_badge_assignment")
        self.assertTrue(group["completionStatus"]["adminApproved"])
        request = self.doc("project_completion_requests", request_id)
        self.assertEqual(request["status"], "admin_approved")
        self.assertTrue(request["adminApproval"]["approved"])
        self.assertEqual(request["adminApproval"]["approvedBy"], "admin@example.com")
        (note,) = self.notifications(userId="owner_uid")
        self.assertEqual(note["type"], "project_review_approved")
        self.assertEqual(note["completionRequestId"], request_id)
        self.assertEqual(
            self.dispatcher.dispatch.call_args.args[0], "send-project-review-approved"
        )
        self.assertEqual(result.group_id, "g1")

    def test_decided_request_conflicts(self) -> None:
        request_id = self._submit()
        self.engine.approve_completion(request_id, ADMIN)
        with self.assertRaises(ConflictError):
            self.engine.reject_completion(request_id, ADMIN, "too late")
        self.assertEqual(
            self.doc("groups", "g1")["status"], "ready_for_badge_assignment"
        )

    def test_reject_resets_group(self) -> None:
        request_id = self._submit()

        self.engine.reject_completion(request_id, ADMIN, "Missing demo")

        group = self.doc("groups", "g1")
        self.assertEqual(group["status"], "active")
        self.assertFalse(group["completionStatus"]["submittedForReview"])
        request = self.doc("project_completion_requests", request_id)
        self.assertEqual(request["status"], "admin_rejected")
        self.assertEqual(request["adminApproval"]["rejectionReason"], "Missing demo")
        (note,) = self.notifications()
        self.assertEqual(note["priority"], "high")
        payload = self.dispatcher.dispatch.call_args.args[1]
        self.assertEqual(payload["completionData"]["rejectionReason"], "Missing demo")

    def test_reject_requires_reason(self) -> None:
        request_id = self._submit()
        with self.assertRaises(ValidationError):
            self.engine.reject_completion(request_id, ADMIN, None)
        self.assertEqual(
            self.doc("project_completion_requests", request_id)["status"],
            "pending_admin_approval",
        )

    def test_resubmit_after_rejection(self) -> None:
        first = self._submit()
        self.engine.reject_completion(first, ADMIN, "Missing demo")
        second = self._submit()
        self.assertNotEqual(first, second)


def evaluation(user_id: str, **overrides: Any) -> dict[str, Any]:
    return {
        "memberEmail": f"{user_id}@example.com",
        "badgeCategory": "development",
        "badgeLevel": "intermediate",
        "contribution": "good",
        "skillsDisplayed": ["python", " "],
        **overrides,
    }


class ProjectCompletionTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.engine = LifecycleEngine(self.store, self.fanout, self.dispatcher)
        seed_project(self.db, "p1", status="approved", groupId="g1")
        self.owner = make_actor("owner_uid")

    def _ready(self, group_id: str = "g1", member_ids=("m1", "m2")) -> str:
        seed_group(
            self.db,
            group_id,
            admin_id="owner_uid",
            member_ids=member_ids,
            projectId="p1",
        )
        request_id = self.engine.submit_completion(group_id, self.owner).entity_id
        self.engine.approve_completion(request_id, ADMIN)
        return request_id

    def _badge_emails(self) -> list[dict[str, Any]]:
        return [
            c.args[1]
            for c in self.dispatcher.dispatch.call_args_list
            if c.args[0] == "send-badge-awarded"
        ]

    def test_complete_awards_badges_and_closes_project(self) -> None:
        request_id = self._ready()

        result = self.engine.complete_project(
            "g1",
            self.owner,
            [
                evaluation("m1", badgeLevel="expert"),
                {**evaluation("m2"), "memberEmail": "", "memberId": "m2"},
            ],
        )

        self.assertEqual(result.entity_id, request_id)
        self.assertEqual(len(result.details["badgeIds"]), 2)
        self.assertFalse(result.details["isSoloProject"])
        badges = {b["memberEmail"]: b for b in self.docs("member_badges", groupId="g1")}
        self.assertEqual(set(badges), {"m1@example.com", "m2@example.com"})
        self.assertEqual(badges["m1@example.com"]["badgeLevel"], "expert")
        self.assertEqual(badges["m1@example.com"]["skillsDisplayed"], ["python"])
        self.assertEqual(badges["m1@example.com"]["teamSize"], 3)
        (certificate,) = self.docs("certificates", groupId="g1")
        self.assertEqual(certificate["type"], "project_owner")
        self.assertEqual(certificate["recipientEmail"], "owner_uid@example.com")

        request = self.doc("project_completion_requests", request_id)
        self.assertEqual(request["status"], "completed")
        self.assertTrue(request["finalCompletion"]["completed"])
        self.assertTrue(request["finalCompletion"]["badgesAwarded"])
        self.assertEqual(self.doc("groups", "g1")["status"], "completed")
        project = self.doc("client_projects", "p1")
        self.assertEqual(project["status"], "completed")
        self.assertTrue(project["projectClosed"])
        self.assertFalse(project["availableForApplications"])

        awarded = self.notifications(type="badge_awarded")
        self.assertEqual({n["userId"] for n in awarded}, {"m1", "m2"})
        emails = self._badge_emails()
        self.assertEqual(
            {e["memberData"]["memberEmail"] for e in emails},
            {"m1@example.com", "m2@example.com"},
        )
        self.assertTrue(result.side_effects_ok)

    def test_solo_project_gets_certificate_only(self) -> None:
        self._ready(member_ids=())

        result = self.engine.complete_project("g1", self.owner, [])

        self.assertTrue(result.details["isSoloProject"])
        self.assertEqual(self.docs("member_badges"), [])
        self.assertEqual(len(self.docs("certificates", groupId="g1")), 1)
        self.assertTrue(self.doc("client_projects", "p1")["isSoloProject"])
        self.assertEqual(self._badge_emails(), [])

    def test_every_member_needs_an_evaluation(self) -> None:
        self._ready()

        with self.assertRaises(ValidationError):
            self.engine.complete_project("g1", self.owner, [evaluation("m1")])

        self.assertEqual(self.docs("member_badges"), [])
        self.assertEqual(
            self.doc("groups", "g1")["status"], "ready_for_badge_assignment"
        )

    def test_invalid_badge_level(self) -> None:
        self._ready()
        with self.assertRaises(ValidationError):
            self.engine.complete_project(
                "g1",
                self.owner,
                [evaluation("m1", badgeLevel="legendary"), evaluation("m2")],
            )

    def test_outsider_cannot_be_evaluated(self) -> None:
        self._ready()
        with self.assertRaises(ValidationError):
            self.engine.complete_project(
                "g1", self.owner, [evaluation("m1"), evaluation("m2"), evaluation("x")]
            )

    def test_only_group_admin_completes(self) -> None:
        self._ready()
        with self.assertRaises(PermissionDeniedError):
            self.engine.complete_project(
                "g1", make_actor("m1"), [evaluation("m1"), evaluation("m2")]
            )

    def test_requires_approved_review(self) -> None:
        seed_group(self.db, "g1", admin_id="owner_uid", projectId="p1")
        self.engine.submit_completion("g1", self.owner)

        with self.assertRaises(ConflictError):
            self.engine.complete_project("g1", self.owner, [])
        self.assertEqual(self.docs("certificates"), [])

    def test_second_completion_conflicts(self) -> None:
        self._ready(member_ids=())
        self.engine.complete_project("g1", self.owner, [])

        with self.assertRaises(ConflictError):
            self.engine.complete_project("g1", self.owner, [])
        self.assertEqual(len(self.docs("certificates")), 1)

    def test_badge_email_failure_is_reported(self) -> None:
        self._ready()
        self.dispatcher.dispatch.side_effect = lambda key, payload: DispatchOutcome(
            key, key != "send-badge-awarded", "relay down"
        )

        result = self.engine.complete_project(
            "g1", self.owner, [evaluation("m1"), evaluation("m2")]
        )

        self.assertTrue(result.email_failed)
        self.assertEqual(result.message, "Action succeeded, email notification failed.")
        self.assertEqual(len(self.docs("member_badges", groupId="g1")), 2)
        self.assertEqual(self.doc("groups", "g1")["status"], "completed")

"""Tests for applications, group membership and company membership."""

from __future__ import annotations

import threading
from typing import Callable
from unittest.mock import patch

from talenthub.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talenthub.lifecycle import MembershipService
from talenthub.lifecycle import membership as membership_module
from tests.conftest import ADMIN, FirestoreTestCase
from tests.helpers import (
    make_actor,
    seed_application,
    seed_company,
    seed_group,
    seed_project,
)


def race_after_lookup(calls: list[Callable[[], object]]) -> list[ConflictError]:
    """Run ``calls`` in threads that all finish their membership lookup first."""
    barrier = threading.Barrier(len(calls))
    real_find = membership_module.find_membership
    conflicts: list[ConflictError] = []

    def find_then_wait(*args, **kwargs):
        found = real_find(*args, **kwargs)
        barrier.wait(5)
        return found

    def run(call: Callable[[], object]) -> None:
        try:
            call()
        except ConflictError as e:
            conflicts.append(e)

    with patch.object(membership_module, "find_membership", find_then_wait):
        threads = [threading.Thread(target=run, args=(c,)) for c in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)
    return conflicts

class ApplicationTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = MembershipService(self.store, self.fanout, self.dispatcher)
        seed_project(self.db, "p1", status="approved", groupId="g1")
        seed_group(self.db, "g1", admin_id="owner_uid", member_ids=("m1",), projectId="p1")
        seed_application(self.db, "a1", "p1", "dev1", projectRole="Designer")
        self.owner = make_actor("owner_uid")

    def test_approve_adds_member_and_counts(self) -> None:
        result = self.service.approve_application("a1", self.owner)

        self.assertEqual(result.group_id, "g1")
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 3)
        member = self.doc("group_members", "g1_dev1")
        self.assertEqual(member["status"], "active")
        self.assertEqual(member["projectRole"], "Designer")
        self.assertEqual(member["applicationId"], "a1")
        application = self.doc("project_applications", "a1")
        self.assertEqual(application["status"], "approved")
        self.assertEqual(application["groupId"], "g1")

        (post,) = self.docs("group_posts", groupId="g1")
        self.assertTrue(post["isSystemPost"])
        self.assertIn("Designer", post["content"])

    def test_approve_notifies_team_but_not_applicant_twice(self) -> None:
        self.service.approve_application("a1", self.owner)

        joined = self.notifications(type="group_member_joined")
        self.assertEqual({n["userId"] for n in joined}, {"owner_uid", "m1"})
        (welcome,) = self.notifications(type="application_approved")
        self.assertEqual(welcome["userId"], "dev1")
        key, payload = self.dispatcher.dispatch.call_args.args
        self.assertEqual(key, "send-application-approved")
        self.assertEqual(payload["projectData"]["groupId"], "g1")

    def test_only_group_admin_approves(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.service.approve_application("a1", make_actor("m1"))
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 2)
        self.assertIsNone(self.doc("group_members", "g1_dev1"))

    def test_platform_admin_may_approve(self) -> None:
        self.service.approve_application("a1", ADMIN)
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 3)

    def test_full_group_conflicts(self) -> None:
        self.db.collection("groups").document("g1").update({"maxMembers": 2})
        with self.assertRaises(ConflictError):
            self.service.approve_application("a1", self.owner)
        self.assertEqual(self.doc("project_applications", "a1")["status"], "pending")

    def test_second_approval_conflicts(self) -> None:
        self.service.approve_application("a1", self.owner)
        with self.assertRaises(ConflictError):
            self.service.approve_application("a1", self.owner)
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 3)

    def test_project_without_group_conflicts(self) -> None:
        seed_project(self.db, "p2", status="pending")
        seed_application(self.db, "a2", "p2", "dev2")
        with self.assertRaises(ConflictError):
            self.service.approve_application("a2", ADMIN)

    def test_concurrent_approvals_both_counted(self) -> None:
        seed_application(self.db, "a2", "p1", "dev2")
        errors: list[BaseException] = []

        def approve(application_id: str) -> None:
            try:
                self.service.approve_application(application_id, self.owner)
            except BaseException as e:  # pragma: no cover
                errors.append(e)

        threads = [
            threading.Thread(target=approve, args=(a,)) for a in ("a1", "a2")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 4)

    def test_same_applicant_racing_is_counted_once(self) -> None:
        seed_application(self.db, "a2", "p1", "dev1", projectRole="Tester")

        conflicts = race_after_lookup(
            [
                lambda: self.service.approve_application("a1", self.owner),
                lambda: self.service.approve_application("a2", self.owner),
            ]
        )

        self.assertEqual(len(conflicts), 1)
        active = self.docs("group_members", groupId="g1", status="active")
        self.assertEqual(len(active), 3)
        self.assertEqual(self.doc("groups", "g1")["memberCount"], len(active))

    def test_reject_application(self) -> None:
        self.service.reject_application("a1", self.owner, "Role filled")

        application = self.doc("project_applications", "a1")
        self.assertEqual(application["status"], "rejected")
        self.assertEqual(application["rejectionReason"], "Role filled")
        (note,) = self.notifications(userId="dev1")
        self.assertIn("Role filled", note["message"])
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 2)
        self.assertEqual(
            self.dispatcher.dispatch.call_args.args[0], "send-application-rejected"
        )


class GroupMemberRemovalTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = MembershipService(self.store, self.fanout, self.dispatcher)
        seed_group(self.db, "g1", admin_id="owner_uid", member_ids=("m1", "m2"))
        self.owner = make_actor("owner_uid")

    def test_remove_marks_row_and_decrements(self) -> None:
        self.service.remove_group_member("g1", "m1", self.owner)

        self.assertEqual(self.doc("group_members", "g1_m1")["status"], "removed")
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 2)
        (note,) = self.notifications(userId="m1")
        self.assertEqual(note["type"], "group_member_removed")

    def test_admin_cannot_be_removed(self) -> None:
        with self.assertRaises(ConflictError):
            self.service.remove_group_member("g1", "owner_uid", ADMIN)
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 3)

    def test_members_cannot_remove_each_other(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.service.remove_group_member("g1", "m2", make_actor("m1"))

    def test_removed_member_not_found(self) -> None:
        self.service.remove_group_member("g1", "m1", self.owner)
        with self.assertRaises(NotFoundError):
            self.service.remove_group_member("g1", "m1", self.owner)
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 2)


class CompanyMembershipTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = MembershipService(self.store, self.fanout, self.dispatcher)
        seed_company(self.db, "c1", admin_id="founder_uid", member_ids=("m1",))
        self.founder = make_actor("founder_uid")

    def test_join_and_leave(self) -> None:
        newcomer = make_actor("new_uid")

        self.service.join_company("c1", newcomer)
        self.assertEqual(self.doc("companies", "c1")["memberCount"], 3)
        self.assertEqual(self.doc("company_members", "c1_new_uid")["role"], "member")
        self.assertEqual(
            {n["userId"] for n in self.notifications(type="company_member_joined")},
            {"founder_uid", "m1"},
        )

        self.service.leave_company("c1", newcomer)
        self.assertEqual(self.doc("companies", "c1")["memberCount"], 2)
        self.assertEqual(self.doc("company_members", "c1_new_uid")["status"], "removed")

    def test_rejoin_reuses_row(self) -> None:
        member = make_actor("m1")
        self.service.leave_company("c1", member)
        self.service.join_company("c1", member)
        rows = self.docs("company_members", userId="m1")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["status"], "active")
        self.assertEqual(self.doc("companies", "c1")["memberCount"], 2)

    def test_double_join_conflicts(self) -> None:
        with self.assertRaises(ConflictError):
            self.service.join_company("c1", make_actor("m1"))
        self.assertEqual(self.doc("companies", "c1")["memberCount"], 2)

    def test_racing_joins_are_counted_once(self) -> None:
        newcomer = make_actor("new_uid")

        conflicts = race_after_lookup(
            [lambda: self.service.join_company("c1", newcomer) for _ in range(2)]
        )

        self.assertEqual(len(conflicts), 1)
        active = self.docs("company_members", companyId="c1", status="active")
        self.assertEqual(len(active), 3)
        self.assertEqual(self.doc("companies", "c1")["memberCount"], len(active))

    def test_admin_cannot_leave_active_company(self) -> None:
        with self.assertRaises(ConflictError):
            self.service.leave_company("c1", self.founder)

    def test_end_company(self) -> None:
        self.service.end_company("c1", self.founder)

        company = self.doc("companies", "c1")
        self.assertEqual(company["status"], "ended")
        self.assertEqual(company["endedBy"], "founder_uid")
        (post,) = self.docs("company_posts", companyId="c1")
        self.assertTrue(post["isSystemPost"])
        (note,) = self.notifications(type="company_ended")
        self.assertEqual(note["userId"], "m1")

        with self.assertRaises(ConflictError):
            self.service.join_company("c1", make_actor("late_uid"))
        with self.assertRaises(ConflictError):
            self.service.end_company("c1", self.founder)
        self.service.leave_company("c1", self.founder)
        self.assertEqual(self.doc("companies", "c1")["memberCount"], 1)

    def test_member_cannot_end_company(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.service.end_company("c1", make_actor("m1"))
        self.assertEqual(self.doc("companies", "c1")["status"], "active")


class ReconcileTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = MembershipService(self.store, self.fanout, self.dispatcher)

    def test_drift_is_corrected(self) -> None:
        seed_group(self.db, "g1", member_ids=("m1",), memberCount=7)

        with self.assertLogs("talenthub.lifecycle.membership", level="WARNING"):
            counts = self.service.reconcile_member_count("group", "g1")

        self.assertEqual(counts, {"previous": 7, "current": 2})
        self.assertEqual(self.doc("groups", "g1")["memberCount"], 2)

    def test_accurate_count_untouched(self) -> None:
        seed_company(self.db, "c1", member_ids=("m1", "m2"))
        counts = self.service.reconcile_member_count("company", "c1")
        self.assertEqual(counts, {"previous": 3, "current": 3})

    def test_unknown_kind(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.reconcile_member_count("team", "g1")

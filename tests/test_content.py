"""Tests for posts, comments and likes."""

from __future__ import annotations

from talenthub.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from talenthub.lifecycle import COMPANY_SCOPE, GROUP_SCOPE, ContentService
from tests.conftest import FirestoreTestCase
from tests.helpers import make_actor, seed_company, seed_group


class GroupContentTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = ContentService(self.store, self.fanout)
        seed_group(self.db, "g1", admin_id="owner_uid", member_ids=("m1", "m2"))
        self.author = make_actor("m1")

    def _post(self) -> str:
        return self.service.create_post(
            GROUP_SCOPE, "g1", self.author, "Sprint notes", title="Week 1"
        ).entity_id

    def test_create_post_notifies_other_members(self) -> None:
        post_id = self._post()

        post = self.doc("group_posts", post_id)
        self.assertEqual(post["groupId"], "g1")
        self.assertEqual(post["replyCount"], 0)
        self.assertEqual(post["title"], "Week 1")
        notes = self.notifications(type="group_post")
        self.assertEqual({n["userId"] for n in notes}, {"owner_uid", "m2"})
        self.assertTrue(all(n["postId"] == post_id for n in notes))

    def test_outsider_cannot_post(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.service.create_post(GROUP_SCOPE, "g1", make_actor("stranger"), "hi")
        self.assertEqual(self.docs("group_posts"), [])

    def test_blank_post_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create_post(GROUP_SCOPE, "g1", self.author, "   ")

    def test_post_length_limit(self) -> None:
        with self.assertRaises(ValidationError):
            self.service.create_post(GROUP_SCOPE, "g1", self.author, "x" * 5001)

    def test_comment_bumps_counter_and_notifies_author(self) -> None:
        post_id = self._post()

        result = self.service.add_comment(
            GROUP_SCOPE, post_id, make_actor("m2"), "Looks good"
        )

        self.assertEqual(self.doc("group_posts", post_id)["replyCount"], 1)
        reply = self.doc("post_replies", result.entity_id)
        self.assertEqual(reply["postId"], post_id)
        self.assertEqual(reply["groupId"], "g1")
        (note,) = self.notifications(type="group_reply")
        self.assertEqual(note["userId"], "m1")

    def test_own_comment_does_not_notify_author(self) -> None:
        post_id = self._post()
        self.service.add_comment(GROUP_SCOPE, post_id, self.author, "Adding more")
        self.assertEqual(self.notifications(type="group_reply"), [])

    def test_delete_comment_decrements(self) -> None:
        post_id = self._post()
        comment_id = self.service.add_comment(
            GROUP_SCOPE, post_id, make_actor("m2"), "Typo"
        ).entity_id

        self.service.delete_comment(GROUP_SCOPE, comment_id, make_actor("m2"))

        self.assertIsNone(self.doc("post_replies", comment_id))
        self.assertEqual(self.doc("group_posts", post_id)["replyCount"], 0)
        with self.assertRaises(NotFoundError):
            self.service.delete_comment(GROUP_SCOPE, comment_id, make_actor("m2"))

    def test_only_author_or_admin_deletes_comment(self) -> None:
        post_id = self._post()
        comment_id = self.service.add_comment(
            GROUP_SCOPE, post_id, make_actor("m2"), "Mine"
        ).entity_id

        with self.assertRaises(PermissionDeniedError):
            self.service.delete_comment(GROUP_SCOPE, comment_id, self.author)

        self.service.delete_comment(GROUP_SCOPE, comment_id, make_actor("owner_uid"))
        self.assertIsNone(self.doc("post_replies", comment_id))

    def test_toggle_like_twice(self) -> None:
        post_id = self._post()
        liker = make_actor("m2")

        first = self.service.toggle_like(GROUP_SCOPE, post_id, liker)
        self.assertEqual(first, {"liked": True, "likeCount": 1})
        post = self.doc("group_posts", post_id)
        self.assertEqual(post["likes"], ["m2"])
        self.assertEqual(post["likeCount"], 1)

        second = self.service.toggle_like(GROUP_SCOPE, post_id, liker)
        self.assertEqual(second, {"liked": False, "likeCount": 0})
        post = self.doc("group_posts", post_id)
        self.assertEqual(post["likes"], [])
        self.assertEqual(post["likeCount"], 0)


class CompanyContentTestCase(FirestoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = ContentService(self.store, self.fanout)
        seed_company(self.db, "c1", admin_id="founder_uid", member_ids=("m1",))
        self.founder = make_actor("founder_uid")

    def test_only_company_admin_posts(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            self.service.create_post(COMPANY_SCOPE, "c1", make_actor("m1"), "Hello")

        post_id = self.service.create_post(
            COMPANY_SCOPE, "c1", self.founder, "Hiring!"
        ).entity_id
        post = self.doc("company_posts", post_id)
        self.assertEqual(post["commentCount"], 0)
        (note,) = self.notifications(type="company_post")
        self.assertEqual(note["userId"], "m1")

    def test_members_comment_with_comment_count(self) -> None:
        post_id = self.service.create_post(
            COMPANY_SCOPE, "c1", self.founder, "Hiring!"
        ).entity_id
        self.service.add_comment(COMPANY_SCOPE, post_id, make_actor("m1"), "Me!")
        self.assertEqual(self.doc("company_posts", post_id)["commentCount"], 1)
        self.assertEqual(len(self.docs("company_comments", postId=post_id)), 1)

    def test_ended_company_rejects_content(self) -> None:
        post_id = self.service.create_post(
            COMPANY_SCOPE, "c1", self.founder, "Hiring!"
        ).entity_id
        self.db.collection("companies").document("c1").update({"status": "ended"})

        with self.assertRaises(ConflictError):
            self.service.create_post(COMPANY_SCOPE, "c1", self.founder, "Again")
        with self.assertRaises(ConflictError):
            self.service.add_comment(COMPANY_SCOPE, post_id, make_actor("m1"), "Hi")

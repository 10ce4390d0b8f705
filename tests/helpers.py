"""Seed data builders for tests."""

from __future__ import annotations

from typing import Any

from faker import Faker

from talenthub.auth.models import Actor

fake = Faker()
Faker.seed(4321)


def make_actor(user_id: str, **overrides: Any) -> Actor:
    email = overrides.pop("email", f"{user_id}@example.com")
    return Actor(
        user_id=user_id,
        email=email,
        name=overrides.pop("name", fake.name()),
        is_admin=overrides.pop("is_admin", False),
    )


def seed_user(db: Any, user_id: str, **fields: Any) -> dict[str, Any]:
    data = {
        "email": f"{user_id}@example.com",
        "displayName": fake.name(),
        "isAdmin": False,
        **fields,
    }
    db.collection("users").document(user_id).set(data)
    return data


def seed_project(db: Any, project_id: str, **fields: Any) -> dict[str, Any]:
    data = {
        "projectTitle": fake.catch_phrase(),
        "projectDescription": fake.paragraph(),
        "contactEmail": "owner@example.com",
        "contactName": fake.name(),
        "companyName": fake.company(),
        "submitterId": "owner_uid",
        "status": "pending",
        **fields,
    }
    db.collection("client_projects").document(project_id).set(data)
    return data


def seed_event(db: Any, event_id: str, **fields: Any) -> dict[str, Any]:
    data = {
        "eventTitle": fake.catch_phrase(),
        "organizerEmail": "organizer@example.com",
        "organizerName": fake.name(),
        "submitterId": "organizer_uid",
        "status": "pending",
        **fields,
    }
    db.collection("tech_events").document(event_id).set(data)
    return data


def seed_group(
    db: Any,
    group_id: str,
    admin_id: str = "owner_uid",
    member_ids: tuple[str, ...] = (),
    **fields: Any,
) -> dict[str, Any]:
    """Create a group with an admin row plus one active row per member id."""
    data = {
        "projectTitle": fake.catch_phrase(),
        "projectId": fields.pop("projectId", None),
        "adminId": admin_id,
        "adminEmail": f"{admin_id}@example.com",
        "adminName": fake.name(),
        "status": "active",
        "memberCount": 1 + len(member_ids),
        "maxMembers": 10,
        **fields,
    }
    db.collection("groups").document(group_id).set(data)
    seed_member(db, "group_members", "groupId", group_id, admin_id, role="admin")
    for member_id in member_ids:
        seed_member(db, "group_members", "groupId", group_id, member_id)
    return data


def seed_company(
    db: Any,
    company_id: str,
    admin_id: str = "founder_uid",
    member_ids: tuple[str, ...] = (),
    **fields: Any,
) -> dict[str, Any]:
    data = {
        "companyName": fake.company(),
        "createdBy": admin_id,
        "adminEmail": f"{admin_id}@example.com",
        "status": "active",
        "memberCount": 1 + len(member_ids),
        **fields,
    }
    db.collection("companies").document(company_id).set(data)
    seed_member(db, "company_members", "companyId", company_id, admin_id, role="admin")
    for member_id in member_ids:
        seed_member(db, "company_members", "companyId", company_id, member_id)
    return data


def seed_member(
    db: Any,
    collection: str,
    parent_field: str,
    parent_id: str,
    user_id: str,
    role: str = "member",
    status: str = "active",
) -> str:
    member_id = f"{parent_id}_{user_id}"
    db.collection(collection).document(member_id).set(
        {
            parent_field: parent_id,
            "userId": user_id,
            "userEmail": f"{user_id}@example.com",
            "userName": fake.name(),
            "role": role,
            "status": status,
        }
    )
    return member_id


def seed_application(
    db: Any, application_id: str, project_id: str, user_id: str, **fields: Any
) -> dict[str, Any]:
    data = {
        "projectId": project_id,
        "applicantId": user_id,
        "applicantEmail": f"{user_id}@example.com",
        "applicantName": fake.name(),
        "projectRole": "Developer",
        "status": "pending",
        **fields,
    }
    db.collection("project_applications").document(application_id).set(data)
    return data


def seed_doc(db: Any, collection: str, doc_id: str, **fields: Any) -> None:
    db.collection(collection).document(doc_id).set(fields)

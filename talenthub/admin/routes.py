"""Admin routes for lifecycle transitions and cascade deletions."""

from __future__ import annotations

from typing import Any, Callable, Optional

from flask import current_app, jsonify, session

from talenthub.auth.decorators import login_required
from talenthub.cascade import require_confirmation, start_cascade_job
from talenthub.core import constants
from talenthub.core.types import APIResponse
from talenthub.errors import ValidationError

from . import bp
from .forms import DeletionForm, RejectionForm
from .services import get_gateway

JOB_FIELDS = ("kind", "targetId", "requestedBy", "status", "receipt", "error")
RECONCILE_KINDS = {"groups": "group", "companies": "company"}


def _respond(message: str, data: Any, status_code: int = 200):
    body: APIResponse = {"success": True, "message": message, "data": data}
    return jsonify(body), status_code


def _transition(result):
    return _respond(result.message, result.to_dict())


def _admin():
    return get_gateway().authorize(session.get("user_id"))


def _reason() -> Optional[str]:
    return RejectionForm().reason.data


def _cascade(kind: str, target_id: Optional[str], operation: Callable[..., Any]):
    """Confirm, then run ``operation`` as a background cascade job.

    The request waits up to ``CASCADE_WAIT_SECONDS`` for the receipt and
    answers 202 with the job id when the cascade is still running.
    """
    admin = _admin()
    gateway = get_gateway()
    form = DeletionForm()
    confirm = form.confirm.data
    phrase = form.confirmationPhrase.data
    require_confirmation(kind, confirm, phrase)
    if target_id is not None:
        gateway.cascade.ensure_root(kind, target_id)

    def run():
        if target_id is None:
            return operation(admin, confirm, phrase)
        return operation(target_id, admin, confirm, phrase)

    job = start_cascade_job(
        current_app._get_current_object(),  # type: ignore[attr-defined]
        gateway.store,
        kind,
        target_id or "*",
        admin,
        run,
    )
    if not job.wait(current_app.config["CASCADE_WAIT_SECONDS"]):
        current_app.logger.info(
            f"Cascade job {job.job_id} for {kind} {target_id} still running"
        )
        return _respond(
            "Deletion is still running.",
            {"jobId": job.job_id, "status": "running"},
            202,
        )
    if job.error is not None:
        raise job.error
    receipt = job.receipt
    warning = receipt.warning
    if warning is not None:
        raise warning
    return _respond(
        f"{kind.replace('_', ' ').capitalize()} deleted.",
        {
            "jobId": job.job_id,
            "core": receipt.to_dict(),
            "sideEffects": {"ownerNotified": receipt.owner_notified},
        },
    )


# Projects


@bp.route("/projects/<string:project_id>/approve", methods=["POST"])
@login_required(admin_required=True)
def approve_project(project_id):
    """Approve a project and create its team group."""
    result = get_gateway().lifecycle.approve_project(project_id, _admin())
    return _transition(result)


@bp.route("/projects/<string:project_id>/reject", methods=["POST"])
@login_required(admin_required=True)
def reject_project(project_id):
    """Reject a project with a reason."""
    result = get_gateway().lifecycle.reject_project(project_id, _admin(), _reason())
    return _transition(result)


@bp.route("/projects/<string:project_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_project(project_id):
    """Delete a project, its team group and its applications."""
    return _cascade("project", project_id, get_gateway().lifecycle.delete_project)


# Events


@bp.route("/events/<string:event_id>/approve", methods=["POST"])
@login_required(admin_required=True)
def approve_event(event_id):
    """Publish an event."""
    result = get_gateway().lifecycle.approve_event(event_id, _admin())
    return _transition(result)


@bp.route("/events/<string:event_id>/reject", methods=["POST"])
@login_required(admin_required=True)
def reject_event(event_id):
    """Reject an event with a reason."""
    result = get_gateway().lifecycle.reject_event(event_id, _admin(), _reason())
    return _transition(result)


@bp.route("/events/<string:event_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_event(event_id):
    """Delete an event and its registrations."""
    return _cascade("event", event_id, get_gateway().cascade.delete_event)


# Completion reviews


@bp.route("/completions/<string:request_id>/approve", methods=["POST"])
@login_required(admin_required=True)
def approve_completion(request_id):
    """Approve a completion request and mark the group completed."""
    result = get_gateway().lifecycle.approve_completion(request_id, _admin())
    return _transition(result)


@bp.route("/completions/<string:request_id>/reject", methods=["POST"])
@login_required(admin_required=True)
def reject_completion(request_id):
    """Reject a completion request with a reason."""
    result = get_gateway().lifecycle.reject_completion(
        request_id, _admin(), _reason()
    )
    return _transition(result)


# Groups, companies and posts


@bp.route("/groups/<string:group_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_group(group_id):
    """Delete a group and everything that belongs to it."""
    return _cascade("group", group_id, get_gateway().cascade.delete_group)


@bp.route("/companies/<string:company_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_company(company_id):
    """Delete a company page, its members, posts and comments."""
    return _cascade("company", company_id, get_gateway().cascade.delete_company)


@bp.route("/posts/<string:post_id>/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_post(post_id):
    """Delete a community post and its replies."""
    return _cascade("post", post_id, get_gateway().cascade.delete_post)


@bp.route("/groups/delete-all", methods=["POST"])
@login_required(admin_required=True)
def delete_all_groups():
    """Delete every group."""
    return _cascade("all_groups", None, get_gateway().cascade.delete_all_groups)


@bp.route("/posts/delete-all", methods=["POST"])
@login_required(admin_required=True)
def delete_all_posts():
    """Delete every community post."""
    return _cascade("all_posts", None, get_gateway().cascade.delete_all_posts)


@bp.route("/companies/delete-all", methods=["POST"])
@login_required(admin_required=True)
def delete_all_companies():
    """Delete every company page."""
    return _cascade(
        "all_companies", None, get_gateway().cascade.delete_all_companies
    )


@bp.route("/<string:collection>/<string:parent_id>/reconcile", methods=["POST"])
@login_required(admin_required=True)
def reconcile(collection, parent_id):
    """Recompute a group's or company's member count from live rows."""
    kind = RECONCILE_KINDS.get(collection)
    if kind is None:
        raise ValidationError(f"Cannot reconcile {collection}.")
    admin = _admin()
    counts = get_gateway().membership.reconcile_member_count(kind, parent_id)
    current_app.logger.info(
        f"{kind} {parent_id} memberCount reconciled by {admin.label}: {counts}"
    )
    return _respond("Member count reconciled.", counts)


@bp.route("/cascades/<string:job_id>", methods=["GET"])
@login_required(admin_required=True)
def cascade_status(job_id):
    """Report the status of a background cascade."""
    _admin()
    job = get_gateway().store.get(constants.CASCADE_JOBS, job_id)
    data = {"jobId": job_id}
    data.update({key: job[key] for key in JOB_FIELDS if key in job})
    return _respond(f"Cascade job is {job.get('status')}.", data)

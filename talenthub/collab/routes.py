"""Routes used by group admins, company members and post authors."""

from flask import jsonify, request

from talenthub.admin.services import get_gateway
from talenthub.auth.decorators import current_actor, login_required
from talenthub.core.constants import COMPANY_NAME_FALLBACK
from talenthub.errors import NotFoundError, ValidationError
from talenthub.lifecycle import SCOPES

from . import bp
from .forms import CommentForm, DecisionForm, PostForm, ReviewForm


def _respond(message, data, status_code=200):
    return jsonify({"success": True, "message": message, "data": data}), status_code


def _transition(result, status_code=200):
    return _respond(result.message, result.to_dict(), status_code)


def _validated(form):
    """Return ``form`` or raise ValidationError with its first error."""
    if not form.validate_on_submit():
        for field, errors in form.errors.items():
            raise ValidationError(f"{field}: {errors[0]}")
        raise ValidationError()
    return form


def _scope(name):
    scope = SCOPES.get(name)
    if scope is None:
        raise NotFoundError(f"Unknown post scope: {name}")
    return scope


def _actor_for(scope):
    if scope.name == "company":
        return current_actor(COMPANY_NAME_FALLBACK)
    return current_actor()


# Applications and group membership


@bp.route("/applications/<string:application_id>/approve", methods=["POST"])
@login_required
def approve_application(application_id):
    """Accept an applicant into the project's team group."""
    result = get_gateway().membership.approve_application(
        application_id, current_actor()
    )
    return _transition(result)


@bp.route("/applications/<string:application_id>/reject", methods=["POST"])
@login_required
def reject_application(application_id):
    """Decline an application."""
    form = _validated(DecisionForm())
    result = get_gateway().membership.reject_application(
        application_id, current_actor(), form.reason.data
    )
    return _transition(result)


@bp.route(
    "/groups/<string:group_id>/members/<string:user_id>/remove", methods=["POST"]
)
@login_required
def remove_group_member(group_id, user_id):
    """Remove a member from a group."""
    result = get_gateway().membership.remove_group_member(
        group_id, user_id, current_actor()
    )
    return _transition(result)


@bp.route("/groups/<string:group_id>/completion", methods=["POST"])
@login_required
def submit_completion(group_id):
    """Submit a finished project for admin review."""
    form = _validated(ReviewForm())
    result = get_gateway().lifecycle.submit_completion(
        group_id, current_actor(), form.summary.data or ""
    )
    return _transition(result, 201)


@bp.route("/groups/<string:group_id>/complete", methods=["POST"])
@login_required
def complete_project(group_id):
    """Award badges and close a project whose review was approved."""
    body = request.get_json(silent=True) or {}
    result = get_gateway().lifecycle.complete_project(
        group_id, current_actor(), body.get("evaluations")
    )
    return _transition(result)


# Companies


@bp.route("/companies/<string:company_id>/join", methods=["POST"])
@login_required
def join_company(company_id):
    """Join a company page."""
    result = get_gateway().membership.join_company(
        company_id, current_actor(COMPANY_NAME_FALLBACK)
    )
    return _transition(result)


@bp.route("/companies/<string:company_id>/leave", methods=["POST"])
@login_required
def leave_company(company_id):
    """Leave a company page."""
    result = get_gateway().membership.leave_company(
        company_id, current_actor(COMPANY_NAME_FALLBACK)
    )
    return _transition(result)


@bp.route("/companies/<string:company_id>/end", methods=["POST"])
@login_required
def end_company(company_id):
    """End a company page. Members keep read access."""
    result = get_gateway().membership.end_company(
        company_id, current_actor(COMPANY_NAME_FALLBACK)
    )
    return _transition(result)


# Posts and comments


@bp.route("/<string:scope_name>/<string:parent_id>/posts", methods=["POST"])
@login_required
def create_post(scope_name, parent_id):
    """Publish a post to a group or company."""
    scope = _scope(scope_name)
    form = _validated(PostForm())
    result = get_gateway().content.create_post(
        scope, parent_id, _actor_for(scope), form.content.data, form.title.data or ""
    )
    return _transition(result, 201)


@bp.route("/<string:scope_name>/posts/<string:post_id>/comments", methods=["POST"])
@login_required
def add_comment(scope_name, post_id):
    """Comment on a post."""
    scope = _scope(scope_name)
    form = _validated(CommentForm())
    result = get_gateway().content.add_comment(
        scope, post_id, _actor_for(scope), form.content.data
    )
    return _transition(result, 201)


@bp.route(
    "/<string:scope_name>/comments/<string:comment_id>/delete", methods=["POST"]
)
@login_required
def delete_comment(scope_name, comment_id):
    """Delete a comment."""
    scope = _scope(scope_name)
    result = get_gateway().content.delete_comment(
        scope, comment_id, _actor_for(scope)
    )
    return _transition(result)


@bp.route("/<string:scope_name>/posts/<string:post_id>/like", methods=["POST"])
@login_required
def toggle_like(scope_name, post_id):
    """Like or unlike a post."""
    scope = _scope(scope_name)
    state = get_gateway().content.toggle_like(scope, post_id, _actor_for(scope))
    return _respond("Liked." if state["liked"] else "Unliked.", state)

"""Forms for the collaboration blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from talenthub.core.constants import MAX_COMMENT_LENGTH, MAX_POST_LENGTH


class PostForm(FlaskForm):
    """Form for publishing a post to a group or company."""

    class Meta:
        csrf = False

    title = StringField("Title", validators=[Optional(), Length(max=200)])
    content = TextAreaField(
        "Content", validators=[DataRequired(), Length(max=MAX_POST_LENGTH)]
    )


class CommentForm(FlaskForm):
    """Form for commenting on a post."""

    class Meta:
        csrf = False

    content = TextAreaField(
        "Comment", validators=[DataRequired(), Length(max=MAX_COMMENT_LENGTH)]
    )


class ReviewForm(FlaskForm):
    """Form for submitting a finished project for completion review."""

    class Meta:
        csrf = False

    summary = TextAreaField("Summary", validators=[Optional()])


class DecisionForm(FlaskForm):
    """Optional note sent with an application decision."""

    class Meta:
        csrf = False

    reason = TextAreaField("Reason", validators=[Optional()])

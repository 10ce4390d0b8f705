"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, StringField, TextAreaField


class RejectionForm(FlaskForm):
    """Reason given when rejecting a submission."""

    class Meta:
        csrf = False

    reason = TextAreaField("Reason")


class DeletionForm(FlaskForm):
    """Explicit confirmation required by every cascade deletion."""

    class Meta:
        csrf = False

    confirm = BooleanField("Confirm")
    confirmationPhrase = StringField("Confirmation Phrase")

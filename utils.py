"""
Utils module - small normalizers shared by the models, services and routes
"""
import logging

from config import DELETED_EMAIL_MARKER

logger = logging.getLogger(__name__)


def upper(value):
    """Upper-case a possibly missing string value; None becomes ''."""
    if value is None:
        return ''
    return str(value).strip().upper()


def optional_upper(value):
    """Upper-case an optional code such as a batch; blank values become None."""
    value = upper(value)
    return value or None


def normalize_email(email):
    if not email:
        return ''
    return str(email).strip().lower()


def normalize_semester(semester):
    """Return the semester as an int, or None if it is not a number between 1 and 8."""
    if semester is None:
        return None
    if isinstance(semester, str):
        semester = semester.strip()
        if semester.lower().startswith("semester"):
            semester = semester[len("semester"):].strip()
    try:
        value = int(float(semester))
    except (ValueError, TypeError):
        logger.debug(f"Ignoring non-numeric semester {semester!r}")
        return None
    if value < 1 or value > 8:
        return None
    return value


def form_type_of(form):
    """A form with a batch is a lab form, otherwise theory."""
    return 'lab' if form.get('batch') else 'theory'


def add_deleted_marker(comment, email):
    """Append the deleted-student marker to a comment, once."""
    marker = f"{DELETED_EMAIL_MARKER}{email}"
    if comment and DELETED_EMAIL_MARKER in comment:
        return comment
    return f"{comment}\n{marker}" if comment else marker


def strip_deleted_marker(comment):
    """Remove any deleted-student marker line from a comment; returns None when nothing is left."""
    if not comment:
        return None
    lines = [line for line in comment.split('\n') if not line.startswith(DELETED_EMAIL_MARKER)]
    cleaned = '\n'.join(lines).strip()
    return cleaned or None

"""
Service for accepting a student's feedback submissions, one form at a time
or all of the dashboard's forms at once.
"""

import logging
import math
import sqlite3
import uuid
from typing import Dict, List, Optional

from portal.models.database import get_db, row_to_dict
from portal.models.draft import DraftFeedback
from portal.models.response import FeedbackResponse
from portal.errors import (InvalidRequest, NotAuthorized, StudentNotFound, FormNotFound,
                           DuplicateSubmission)
from portal.services.eligibility import can_submit
from portal.services.ratings import clamp_rating
from utils import form_type_of

logger = logging.getLogger(__name__)


def _rating(value, question_type) -> int:
    try:
        rating = float(value)
    except (TypeError, ValueError):
        rating = None
    if rating is None or not math.isfinite(rating):
        raise InvalidRequest(f"Invalid rating value: {value!r}")
    return clamp_rating(rating, question_type)


def _question_map(cursor, form) -> Dict[str, Dict]:
    """parameter id -> question text/type, from the form snapshot or the live bank for old forms."""
    cursor.execute('''
        SELECT original_param_id, question_text, question_type
        FROM form_questions WHERE form_id = ? ORDER BY position
    ''', (form['id'],))
    questions = {row[0]: {'text': row[1], 'type': row[2]} for row in cursor.fetchall()}

    if not questions:
        cursor.execute('''
            SELECT id, text, question_type FROM feedback_parameters WHERE form_type = ?
        ''', (form_type_of(form),))
        questions = {row[0]: {'text': row[1], 'type': row[2]} for row in cursor.fetchall()}
    return questions


def _check_ratings(ratings, form_id=None):
    if not isinstance(ratings, dict) or not ratings:
        raise InvalidRequest(f"Invalid submission for form {form_id}" if form_id else "No ratings provided")


def _load_student(cursor, student_id):
    cursor.execute('SELECT * FROM students WHERE id = ?', (student_id,))
    student = row_to_dict(cursor.fetchone())
    if not student:
        raise StudentNotFound()
    return student


def _load_form(cursor, form_id):
    cursor.execute('SELECT * FROM feedback_forms WHERE id = ?', (form_id,))
    form = row_to_dict(cursor.fetchone())
    if not form:
        raise FormNotFound()
    return form


def _insert(cursor, form, student_id, ratings, comment) -> str:
    questions = _question_map(cursor, form)
    items = []
    for parameter_id, value in ratings.items():
        question = questions.get(parameter_id, {})
        items.append({
            'parameter_id': parameter_id,
            'rating': _rating(value, question.get('type')),
            'question_text': question.get('text'),
            'question_type': question.get('type'),
        })

    response_id = f"resp_{uuid.uuid4()}"
    try:
        FeedbackResponse.create(cursor, response_id, form['id'], student_id, (comment or '').strip() or None, items)
    except sqlite3.IntegrityError:
        raise DuplicateSubmission()
    return response_id


def submit_response(form_id: str, student_id: str, ratings: Dict, comment: Optional[str] = None) -> str:
    """
    Record one student's answers for one form.

    ratings: {parameter_id: raw rating}
    Returns the new response id.
    """
    if not form_id or not student_id or ratings is None:
        raise InvalidRequest()
    _check_ratings(ratings)

    with get_db() as conn:
        cursor = conn.cursor()
        # Take the write lock up front so the duplicate check and insert are atomic
        cursor.execute('BEGIN IMMEDIATE')

        student = _load_student(cursor, student_id)
        form = _load_form(cursor, form_id)

        if not can_submit(student, form):
            logger.warning(f"Rejected submission of {form_id} by {student_id}")
            raise NotAuthorized()

        if FeedbackResponse.exists(cursor, form_id, student_id):
            raise DuplicateSubmission()

        response_id = _insert(cursor, form, student_id, ratings, comment)

    logger.info(f"Feedback {response_id} submitted for {form['subject_name']} by {student_id}")
    return response_id


def submit_responses(student_id: str, submissions: List[Dict]) -> List[str]:
    """
    Record a student's answers for several forms in one transaction.

    submissions: [{'formId': ..., 'ratings': {...}, 'comment': ...}]
    Forms the student already answered are skipped. If any form is missing
    or not open to the student nothing is saved. The student's saved draft
    is cleared with the submission.
    Returns the ids of the responses created.
    """
    if not student_id or not submissions or not isinstance(submissions, list):
        raise InvalidRequest()
    for sub in submissions:
        if not isinstance(sub, dict) or not sub.get('formId'):
            raise InvalidRequest("Invalid submission")
        _check_ratings(sub.get('ratings'), sub['formId'])

    created = []
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('BEGIN IMMEDIATE')

        student = _load_student(cursor, student_id)
        for sub in submissions:
            form = _load_form(cursor, sub['formId'])
            if not can_submit(student, form):
                logger.warning(f"Rejected bulk submission of {form['id']} by {student_id}")
                raise NotAuthorized("Not authorized for one or more forms")
            if FeedbackResponse.exists(cursor, form['id'], student_id):
                continue
            created.append(_insert(cursor, form, student_id, sub['ratings'], sub.get('comment')))

        DraftFeedback.delete(student_id, cursor)

    logger.info(f"{len(created)} feedback responses submitted by {student_id}")
    return created

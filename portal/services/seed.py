"""
Copies a FeedbackStore into the database, for demos and local development.
"""

import logging
from typing import Tuple

from portal.models.feedback_form import FeedbackForm
from portal.models.parameter import FeedbackParameter
from portal.models.student import Student
from portal.models.store import FeedbackStore
from portal.services.submission import submit_response

logger = logging.getLogger(__name__)


def seed_from_store(store: FeedbackStore) -> Tuple[int, int, int]:
    """
    Returns:
        Tuple of (students, forms, responses) written
    """
    FeedbackParameter.seed_if_empty()

    for s in store.get_students():
        Student.add(s['name'], s['email'], s['semester'], s['course'], s['division'], s['batch'],
                    s['honours_course'], s['honours_batch'], student_id=s['id'])

    forms = store.get_forms()
    for f in forms:
        FeedbackForm.create(f['subject_name'], f['faculty_name'], f['faculty_email'], f['semester'],
                            f['course'], f['division'], f['batch'], f['subject_code'], f['academic_year'],
                            form_id=f['id'])

    responses = store.get_responses()
    for r in responses:
        ratings = {item['parameter_id']: item['rating'] for item in r['items']}
        submit_response(r['form_id'], r['student_id'], ratings, r['comment'])

    # Closed forms refuse submissions, so their status is applied last
    for f in forms:
        if f['status'] != 'active':
            FeedbackForm.set_status(f['id'], f['status'])

    counts = len(store.get_students()), len(forms), len(responses)
    logger.info(f"Seeded {counts[0]} students, {counts[1]} forms, {counts[2]} responses")
    return counts

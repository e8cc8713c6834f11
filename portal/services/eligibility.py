"""
Decides which students belong to the audience of a feedback form.

A student matches a form through their regular enrollment (semester, course,
division, batch) or through their honours/minor enrollment (semester,
honours course, honours batch). Division is never checked for the honours
track since those cohorts are cross-divisional. All string comparisons are
case-insensitive.
"""

import logging
from typing import Dict, Iterable, List, Optional

from config import KNOWN_COURSES
from utils import upper

logger = logging.getLogger(__name__)


def _same_semester(student: Dict, form: Dict) -> bool:
    try:
        return int(student.get('semester')) == int(form.get('semester'))
    except (TypeError, ValueError):
        return False


def _regular_match(student: Dict, form: Dict) -> bool:
    if not _same_semester(student, form):
        return False
    if upper(student.get('course')) != upper(form.get('course')):
        return False
    # An empty division marks an honours-only form
    if form.get('division') and upper(student.get('division')) != upper(form.get('division')):
        return False
    if form.get('batch') and upper(student.get('batch')) != upper(form.get('batch')):
        return False
    return True


def _honours_match(student: Dict, form: Dict) -> bool:
    if not student.get('honours_course'):
        return False
    if not _same_semester(student, form):
        return False
    if upper(student.get('honours_course')) != upper(form.get('course')):
        return False
    if form.get('batch') and upper(student.get('honours_batch')) != upper(form.get('batch')):
        return False
    return True


def is_eligible(student: Dict, form: Dict) -> bool:
    """True if the student is in the audience of the form through either enrollment."""
    return _regular_match(student, form) or _honours_match(student, form)


def can_submit(student: Dict, form: Dict) -> bool:
    """A student may only submit to an active form they are eligible for."""
    return form.get('status') == 'active' and is_eligible(student, form)


def is_honours_course(course: Optional[str]) -> bool:
    return bool(course) and upper(course) not in KNOWN_COURSES


def eligible_students(students: Iterable[Dict], form: Dict) -> List[Dict]:
    """The audience of one form, each student once, in input order."""
    audience = []
    seen = set()
    for student in students:
        if student['id'] in seen or not is_eligible(student, form):
            continue
        seen.add(student['id'])
        audience.append(student)
    return audience


def eligible_forms(student: Dict, forms: Iterable[Dict], active_only: bool = True) -> List[Dict]:
    """Forms shown on a student's dashboard."""
    return [
        form for form in forms
        if is_eligible(student, form) and (not active_only or form.get('status') == 'active')
    ]


def _response_lookup(responses: Iterable[Dict]) -> Dict[str, Dict[str, Optional[str]]]:
    """form_id -> {student_id: submitted_at}"""
    lookup = {}
    for response in responses:
        lookup.setdefault(response['form_id'], {})[response['student_id']] = response.get('submitted_at')
    return lookup


def form_completion(form: Dict, students: Iterable[Dict], responses: Iterable[Dict]) -> List[Dict]:
    """Every eligible student of one form with whether they have filled it."""
    submitted = _response_lookup(responses).get(form['id'], {})
    return [
        {
            'student': student,
            'filled': student['id'] in submitted,
            'submitted_at': submitted.get(student['id']),
        }
        for student in eligible_students(students, form)
    ]


def completion_matrix(forms: Iterable[Dict], students: Iterable[Dict], responses: Iterable[Dict]) -> List[Dict]:
    """
    Completion status of every student across a set of forms.

    A student appears once, with the union of the forms they are eligible for,
    and counts as filled only when a response exists for every one of them.
    Students eligible for none of the forms are left out.
    """
    students = list(students)
    lookup = _response_lookup(responses)
    entries = {}

    for form in forms:
        submitted = lookup.get(form['id'], {})
        for student in students:
            if not is_eligible(student, form):
                continue
            entry = entries.setdefault(student['id'], {
                'student': student,
                'eligible_form_ids': set(),
                'filled_form_ids': set(),
                'submitted_at': None,
            })
            entry['eligible_form_ids'].add(form['id'])
            if student['id'] in submitted:
                entry['filled_form_ids'].add(form['id'])
                submitted_at = submitted[student['id']]
                if submitted_at and (entry['submitted_at'] is None or str(submitted_at) > str(entry['submitted_at'])):
                    entry['submitted_at'] = submitted_at

    matrix = []
    for entry in entries.values():
        entry['filled_count'] = len(entry['filled_form_ids'])
        entry['total_count'] = len(entry['eligible_form_ids'])
        entry['filled'] = entry['filled_count'] == entry['total_count']
        matrix.append(entry)

    logger.debug(f"Completion matrix built for {len(matrix)} students")
    return matrix

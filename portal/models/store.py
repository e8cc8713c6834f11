"""
In-memory store of students, forms and responses.

Used to seed a demo database and as a fixture source in tests. It owns its
lists; callers go through the methods and get copies back.
"""

import copy
import logging
import uuid
from datetime import datetime

from config import DEFAULT_ACADEMIC_YEAR, DEFAULT_THEORY_QUESTIONS, DEFAULT_LAB_QUESTIONS, DEFAULT_COURSE
from utils import upper, optional_upper, normalize_email, form_type_of
from portal.errors import DuplicateSubmission, FormNotFound, StudentNotFound, NotAuthorized
from portal.services.eligibility import can_submit
from portal.services.ratings import clamp_rating

logger = logging.getLogger(__name__)


class FeedbackStore:
    def __init__(self):
        self._students = []
        self._forms = []
        self._responses = []
        self._parameters = (
            [dict(q, form_type='theory') for q in DEFAULT_THEORY_QUESTIONS]
            + [dict(q, form_type='lab') for q in DEFAULT_LAB_QUESTIONS]
        )

    def add_student(self, name, email, semester, course, division, batch=None,
                    honours_course=None, honours_batch=None, student_id=None):
        student = {
            'id': student_id or f"student_{uuid.uuid4().hex[:12]}",
            'name': name,
            'email': normalize_email(email),
            'semester': int(semester),
            'course': upper(course) or DEFAULT_COURSE,
            'division': upper(division),
            'batch': optional_upper(batch),
            'honours_course': optional_upper(honours_course),
            'honours_batch': optional_upper(honours_batch),
        }
        self._students.append(student)
        return copy.deepcopy(student)

    def add_form(self, subject_name, faculty_name, faculty_email, semester, course, division='',
                 batch=None, subject_code=None, academic_year=DEFAULT_ACADEMIC_YEAR, status='active', form_id=None):
        form = {
            'id': form_id or f"form_{uuid.uuid4().hex[:16]}",
            'subject_name': subject_name,
            'subject_code': subject_code,
            'faculty_name': faculty_name,
            'faculty_email': normalize_email(faculty_email),
            'semester': int(semester),
            'course': upper(course) or DEFAULT_COURSE,
            'division': upper(division),
            'batch': optional_upper(batch),
            'academic_year': academic_year,
            'status': status,
        }
        self._forms.append(form)
        return copy.deepcopy(form)

    def add_response(self, form_id, student_id, ratings, comment=None, submitted_at=None):
        """
        ratings: {parameter_id: raw rating}; question text/type are embedded from the bank.

        Only students eligible for an active form may answer it.
        """
        form = self._find_form(form_id)
        student = next((s for s in self._students if s['id'] == student_id), None)
        if student is None:
            raise StudentNotFound()
        if not can_submit(student, form):
            raise NotAuthorized()
        if any(r['form_id'] == form_id and r['student_id'] == student_id for r in self._responses):
            raise DuplicateSubmission()

        questions = {p['id']: p for p in self.get_parameters(form_type_of(form))}
        response = {
            'id': f"resp_{uuid.uuid4()}",
            'form_id': form_id,
            'student_id': student_id,
            'comment': comment,
            'submitted_at': submitted_at or datetime.now().isoformat(timespec='seconds'),
            'items': [
                {
                    'parameter_id': parameter_id,
                    'rating': clamp_rating(rating, questions.get(parameter_id, {}).get('question_type')),
                    'question_text': questions.get(parameter_id, {}).get('text'),
                    'question_type': questions.get(parameter_id, {}).get('question_type'),
                }
                for parameter_id, rating in ratings.items()
            ],
        }
        self._responses.append(response)
        return copy.deepcopy(response)

    def _find_form(self, form_id):
        for form in self._forms:
            if form['id'] == form_id:
                return form
        raise FormNotFound()

    def set_form_status(self, form_id, status):
        self._find_form(form_id)['status'] = status

    def delete_form(self, form_id):
        self._forms.remove(self._find_form(form_id))
        self._responses = [r for r in self._responses if r['form_id'] != form_id]

    def get_students(self):
        return copy.deepcopy(self._students)

    def get_forms(self, faculty_email=None):
        forms = self._forms
        if faculty_email:
            forms = [f for f in forms if f['faculty_email'] == normalize_email(faculty_email)]
        return copy.deepcopy(forms)

    def get_responses(self, form_id=None):
        responses = self._responses
        if form_id:
            responses = [r for r in responses if r['form_id'] == form_id]
        return copy.deepcopy(responses)

    def get_parameters(self, form_type=None):
        params = [p for p in self._parameters if form_type is None or p['form_type'] == form_type]
        return copy.deepcopy(sorted(params, key=lambda p: (p['form_type'], p['position'])))

    @classmethod
    def sample(cls):
        """A small semester-5 IT class with one honours student, two forms and a few responses."""
        store = cls()
        asha = store.add_student('Asha Patil', 'asha@college.edu', 5, 'IT', 'A', 'A1', student_id='s1')
        rohan = store.add_student('Rohan Mehta', 'rohan@college.edu', 5, 'IT', 'A', 'A2', student_id='s2')
        store.add_student('Neha Shah', 'neha@college.edu', 5, 'IT', 'B', 'B1', student_id='s3')
        store.add_student('Kabir Rao', 'kabir@college.edu', 5, 'AIDS', 'A', 'A1',
                          honours_course='CYBER', honours_batch='H1', student_id='s4')

        dbms = store.add_form('Database Management Systems', 'Dr. Kulkarni', 'kulkarni@college.edu',
                              5, 'IT', 'A', form_id='f1')
        lab = store.add_form('DBMS Lab', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A', 'A1', form_id='f2')
        store.add_form('Cyber Security', 'Prof. Iyer', 'iyer@college.edu', 5, 'CYBER', '', form_id='f3')

        theory_ratings = {q['id']: 3 for q in DEFAULT_THEORY_QUESTIONS}
        theory_ratings['theory_7'] = 9
        store.add_response(dbms['id'], asha['id'], theory_ratings, comment='Clear explanations')
        store.add_response(dbms['id'], rohan['id'], dict(theory_ratings, theory_1=2, theory_7=7))
        store.add_response(lab['id'], asha['id'], {'lab_1': 1, 'lab_2': 0, 'lab_3': 8})
        logger.debug("Sample store built")
        return store

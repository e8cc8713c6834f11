import logging
import uuid

from .database import get_db, row_to_dict
from .parameter import FeedbackParameter
from config import DEFAULT_ACADEMIC_YEAR, DEFAULT_COURSE
from utils import upper, optional_upper, normalize_email, form_type_of
from portal.errors import FormNotFound, InvalidRequest

logger = logging.getLogger(__name__)

FORM_COLUMNS = ('id, subject_name, subject_code, faculty_name, faculty_email, semester, course, '
                'division, batch, academic_year, status, created_at')


class FeedbackForm:
    @staticmethod
    def create(subject_name, faculty_name, faculty_email, semester, course=None, division='',
               batch=None, subject_code=None, academic_year=None, form_id=None, cursor=None):
        """Create an active form and snapshot the question bank for its form type."""
        form = {
            'id': form_id or f"form_{uuid.uuid4().hex[:16]}",
            'subject_name': str(subject_name).strip(),
            'subject_code': (str(subject_code).strip() or None) if subject_code else None,
            'faculty_name': str(faculty_name).strip(),
            'faculty_email': normalize_email(faculty_email),
            'semester': int(semester),
            'course': upper(course) or DEFAULT_COURSE,
            'division': upper(division),
            'batch': optional_upper(batch),
            'academic_year': academic_year or DEFAULT_ACADEMIC_YEAR,
            'status': 'active',
        }

        if cursor is not None:
            FeedbackForm._insert(cursor, form)
        else:
            with get_db() as conn:
                FeedbackForm._insert(conn.cursor(), form)
        return form

    @staticmethod
    def _insert(cursor, form):
        cursor.execute('''
            INSERT INTO feedback_forms (id, subject_name, subject_code, faculty_name, faculty_email,
                                        semester, course, division, batch, academic_year, status)
            VALUES (:id, :subject_name, :subject_code, :faculty_name, :faculty_email,
                    :semester, :course, :division, :batch, :academic_year, :status)
        ''', form)

        cursor.execute('''
            INSERT INTO form_questions (form_id, original_param_id, question_text, position, question_type)
            SELECT ?, id, text, position, question_type
            FROM feedback_parameters WHERE form_type = ?
        ''', (form['id'], form_type_of(form)))

    @staticmethod
    def exists(cursor, subject_name, faculty_email, semester, course, division, batch, academic_year):
        """True if the same class already has a form for this subject and faculty."""
        cursor.execute('''
            SELECT 1 FROM feedback_forms
            WHERE UPPER(subject_name) = ? AND faculty_email = ? AND semester = ? AND course = ?
              AND division = ? AND COALESCE(batch, '') = ? AND academic_year = ?
        ''', (upper(subject_name), normalize_email(faculty_email), int(semester), upper(course) or DEFAULT_COURSE,
              upper(division), upper(batch), academic_year or DEFAULT_ACADEMIC_YEAR))
        return cursor.fetchone() is not None

    @staticmethod
    def get(form_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {FORM_COLUMNS} FROM feedback_forms WHERE id = ?', (form_id,))
            return row_to_dict(cursor.fetchone())

    @staticmethod
    def get_all(semester=None, course=None, batch=None, faculty_email=None, status=None):
        query = f'SELECT {FORM_COLUMNS} FROM feedback_forms WHERE 1 = 1'
        params = []
        if semester is not None:
            query += ' AND semester = ?'
            params.append(int(semester))
        if course:
            query += ' AND course = ?'
            params.append(upper(course))
        if batch:
            query += ' AND batch = ?'
            params.append(upper(batch))
        if faculty_email:
            query += ' AND faculty_email = ?'
            params.append(normalize_email(faculty_email))
        if status:
            query += ' AND status = ?'
            params.append(status)
        query += ' ORDER BY created_at DESC, subject_name'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def questions(form_id):
        """
        Questions of a form in display order.

        Forms generated before snapshots existed fall back to the live bank
        for their form type.
        """
        form = FeedbackForm.get(form_id)
        if not form:
            raise FormNotFound()

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT original_param_id AS id, question_text AS text, position, question_type
                FROM form_questions WHERE form_id = ? ORDER BY position
            ''', (form_id,))
            questions = [dict(row) for row in cursor.fetchall()]

        if not questions:
            questions = [
                {'id': p['id'], 'text': p['text'], 'position': p['position'], 'question_type': p['question_type']}
                for p in FeedbackParameter.get_all(form_type_of(form))
            ]
        return questions

    @staticmethod
    def set_status(form_id, status):
        if status not in ('active', 'closed'):
            raise InvalidRequest(f"Invalid status: {status}")
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('UPDATE feedback_forms SET status = ? WHERE id = ?', (status, form_id))
            if cursor.rowcount == 0:
                raise FormNotFound()

    @staticmethod
    def delete(form_id):
        """Delete a form together with its question snapshot and responses."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                DELETE FROM feedback_response_items WHERE response_id IN
                    (SELECT id FROM feedback_responses WHERE form_id = ?)
            ''', (form_id,))
            cursor.execute('DELETE FROM feedback_responses WHERE form_id = ?', (form_id,))
            responses_deleted = cursor.rowcount
            cursor.execute('DELETE FROM form_questions WHERE form_id = ?', (form_id,))
            cursor.execute('DELETE FROM feedback_forms WHERE id = ?', (form_id,))
            if cursor.rowcount == 0:
                raise FormNotFound()
        logger.info(f"Deleted form {form_id} and {responses_deleted} responses")
        return responses_deleted

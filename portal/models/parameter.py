import logging
import uuid

from .database import get_db, row_to_dict
from config import DEFAULT_THEORY_QUESTIONS, DEFAULT_LAB_QUESTIONS, QUESTION_TYPES, FORM_TYPES, SCALE_1_10
from portal.errors import InvalidRequest, ParameterNotFound

logger = logging.getLogger(__name__)


def _check(form_type, question_type):
    if form_type not in FORM_TYPES:
        raise InvalidRequest(f"Invalid form type: {form_type}")
    if question_type not in QUESTION_TYPES:
        raise InvalidRequest(f"Invalid question type: {question_type}")


class FeedbackParameter:
    """The live question bank. Forms snapshot it when they are generated."""

    @staticmethod
    def get_all(form_type=None):
        with get_db() as conn:
            cursor = conn.cursor()
            if form_type:
                cursor.execute('''
                    SELECT id, text, position, form_type, question_type
                    FROM feedback_parameters WHERE form_type = ? ORDER BY position
                ''', (form_type,))
            else:
                cursor.execute('''
                    SELECT id, text, position, form_type, question_type
                    FROM feedback_parameters ORDER BY form_type DESC, position
                ''')
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def get(parameter_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, text, position, form_type, question_type
                FROM feedback_parameters WHERE id = ?
            ''', (parameter_id,))
            return row_to_dict(cursor.fetchone())

    @staticmethod
    def add(text, form_type='theory', question_type=SCALE_1_10, position=None):
        text = (text or '').strip()
        if not text:
            raise InvalidRequest("Question text is required")
        _check(form_type, question_type)

        with get_db() as conn:
            cursor = conn.cursor()
            if position is None:
                cursor.execute('SELECT COALESCE(MAX(position), 0) FROM feedback_parameters WHERE form_type = ?',
                               (form_type,))
                position = cursor.fetchone()[0] + 1
            parameter = {
                'id': f"param_{uuid.uuid4().hex[:12]}",
                'text': text,
                'position': int(position),
                'form_type': form_type,
                'question_type': question_type,
            }
            cursor.execute('''
                INSERT INTO feedback_parameters (id, text, position, form_type, question_type)
                VALUES (:id, :text, :position, :form_type, :question_type)
            ''', parameter)
        return parameter

    @staticmethod
    def update(parameter_id, **changes):
        current = FeedbackParameter.get(parameter_id)
        if not current:
            raise ParameterNotFound()
        current.update({k: v for k, v in changes.items() if v is not None and k in current and k != 'id'})
        if not str(current['text']).strip():
            raise InvalidRequest("Question text is required")
        _check(current['form_type'], current['question_type'])

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE feedback_parameters
                SET text = :text, position = :position, form_type = :form_type, question_type = :question_type
                WHERE id = :id
            ''', current)
        return current

    @staticmethod
    def delete(parameter_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM feedback_parameters WHERE id = ?', (parameter_id,))
            if cursor.rowcount == 0:
                raise ParameterNotFound()

    @staticmethod
    def reset_defaults():
        """Replace the question bank with the default theory and lab questions."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM feedback_parameters')
            rows = [dict(q, form_type='theory') for q in DEFAULT_THEORY_QUESTIONS]
            rows += [dict(q, form_type='lab') for q in DEFAULT_LAB_QUESTIONS]
            cursor.executemany('''
                INSERT INTO feedback_parameters (id, text, position, form_type, question_type)
                VALUES (:id, :text, :position, :form_type, :question_type)
            ''', rows)
        logger.info(f"Question bank reset to {len(rows)} default questions")
        return len(rows)

    @staticmethod
    def seed_if_empty():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM feedback_parameters')
            if cursor.fetchone()[0]:
                return 0
        return FeedbackParameter.reset_defaults()

import json
import logging

from .database import get_db

logger = logging.getLogger(__name__)


class DraftFeedback:
    """A student's unsubmitted answers, saved as they go and cleared once submitted."""

    @staticmethod
    def get(student_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT form_data, updated_at FROM draft_feedback WHERE student_id = ?', (student_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return {'form_data': json.loads(row['form_data']), 'updated_at': row['updated_at']}

    @staticmethod
    def save(student_id, form_data):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO draft_feedback (student_id, form_data) VALUES (?, ?)
                ON CONFLICT(student_id) DO UPDATE SET form_data = excluded.form_data,
                                                      updated_at = CURRENT_TIMESTAMP
            ''', (student_id, json.dumps(form_data)))

    @staticmethod
    def delete(student_id, cursor=None):
        if cursor is not None:
            cursor.execute('DELETE FROM draft_feedback WHERE student_id = ?', (student_id,))
            return cursor.rowcount
        with get_db() as conn:
            return DraftFeedback.delete(student_id, conn.cursor())

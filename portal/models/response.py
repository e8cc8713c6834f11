import logging

from .database import get_db

logger = logging.getLogger(__name__)


class FeedbackResponse:
    @staticmethod
    def create(cursor, response_id, form_id, student_id, comment, items):
        """Insert a response and its items on an open cursor; the caller owns the transaction."""
        cursor.execute('''
            INSERT INTO feedback_responses (id, form_id, student_id, comment)
            VALUES (?, ?, ?, ?)
        ''', (response_id, form_id, student_id, comment))
        cursor.executemany('''
            INSERT INTO feedback_response_items (response_id, parameter_id, rating, question_text, question_type)
            VALUES (?, ?, ?, ?, ?)
        ''', [
            (response_id, item['parameter_id'], item['rating'], item.get('question_text'), item.get('question_type'))
            for item in items
        ])

    @staticmethod
    def exists(cursor, form_id, student_id):
        cursor.execute('''
            SELECT 1 FROM feedback_responses WHERE form_id = ? AND student_id = ?
        ''', (form_id, student_id))
        return cursor.fetchone() is not None

    @staticmethod
    def get_all(form_id=None, student_id=None, form_ids=None, with_items=True):
        """Responses, newest first, each with its ordered list of items."""
        query = 'SELECT id, form_id, student_id, comment, submitted_at FROM feedback_responses WHERE 1 = 1'
        params = []
        if form_id:
            query += ' AND form_id = ?'
            params.append(form_id)
        if student_id:
            query += ' AND student_id = ?'
            params.append(student_id)
        if form_ids is not None:
            if not form_ids:
                return []
            query += f" AND form_id IN ({', '.join(['?'] * len(form_ids))})"
            params.extend(form_ids)
        query += ' ORDER BY submitted_at DESC, id'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            responses = [dict(row) for row in cursor.fetchall()]

            if with_items and responses:
                by_id = {r['id']: r for r in responses}
                for response in responses:
                    response['items'] = []
                placeholders = ', '.join(['?'] * len(by_id))
                cursor.execute(f'''
                    SELECT response_id, parameter_id, rating, question_text, question_type
                    FROM feedback_response_items
                    WHERE response_id IN ({placeholders})
                    ORDER BY id
                ''', list(by_id))
                for row in cursor.fetchall():
                    item = dict(row)
                    by_id[item.pop('response_id')]['items'].append(item)

        return responses

    @staticmethod
    def count():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM feedback_responses')
            return cursor.fetchone()[0]

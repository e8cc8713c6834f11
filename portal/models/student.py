import logging
import sqlite3
import uuid

from .database import get_db, row_to_dict
from config import (DEFAULT_COURSE, PLACEHOLDER_STUDENT_ID, PLACEHOLDER_STUDENT_EMAIL,
                    DELETED_EMAIL_MARKER)
from utils import upper, optional_upper, normalize_email, add_deleted_marker, strip_deleted_marker
from portal.errors import DuplicateStudent, StudentNotFound, EmailInUse

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = 'id, name, email, semester, course, division, batch, honours_course, honours_batch'


def _clean(name, email, semester, course, division, batch=None, honours_course=None, honours_batch=None):
    return {
        'name': str(name).strip(),
        'email': normalize_email(email),
        'semester': int(semester),
        'course': upper(course) or DEFAULT_COURSE,
        'division': upper(division),
        'batch': optional_upper(batch),
        'honours_course': optional_upper(honours_course),
        'honours_batch': optional_upper(honours_batch),
    }


class Student:
    @staticmethod
    def add(name, email, semester, course, division, batch=None,
            honours_course=None, honours_batch=None, student_id=None):
        """Add a new student and re-link any responses they left behind when previously deleted."""
        data = _clean(name, email, semester, course, division, batch, honours_course, honours_batch)
        data['id'] = student_id or f"student_{uuid.uuid4().hex[:12]}"

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM faculty WHERE email = ?', (data['email'],))
            if cursor.fetchone():
                raise EmailInUse('faculty')
            try:
                cursor.execute(f'''
                    INSERT INTO students ({STUDENT_COLUMNS})
                    VALUES (:id, :name, :email, :semester, :course, :division, :batch,
                            :honours_course, :honours_batch)
                ''', data)
            except sqlite3.IntegrityError:
                raise DuplicateStudent()

            relinked = Student._relink_responses(cursor, data['id'], data['email'])
            if relinked:
                logger.info(f"Re-linked {relinked} responses to {data['email']}")

        return data

    @staticmethod
    def _relink_responses(cursor, student_id, email):
        marker = f"{DELETED_EMAIL_MARKER}{email}"
        cursor.execute('''
            SELECT id, comment FROM feedback_responses
            WHERE student_id = ? AND comment LIKE ?
        ''', (PLACEHOLDER_STUDENT_ID, f"%{marker}%"))

        relinked = 0
        for row in cursor.fetchall():
            # Guard against a marker for a longer email that merely starts with this one
            if marker not in row['comment'].split('\n'):
                continue
            cursor.execute('''
                UPDATE feedback_responses SET student_id = ?, comment = ? WHERE id = ?
            ''', (student_id, strip_deleted_marker(row['comment']), row['id']))
            relinked += 1
        return relinked

    @staticmethod
    def bulk_add(students):
        """Add multiple students at once.
        students: list of dicts with the student fields
        Returns: (added_count, duplicate_count, duplicates_list)
        """
        added = []
        duplicates = []

        for record in students:
            try:
                Student.add(
                    record['name'], record['email'], record['semester'],
                    record.get('course'), record.get('division'), record.get('batch'),
                    record.get('honours_course'), record.get('honours_batch'),
                )
                added.append(record['email'])
            except (DuplicateStudent, EmailInUse):
                duplicates.append(record['email'])
            except (KeyError, ValueError, TypeError) as e:
                logger.error(f"Error adding student {record.get('email')}: {e}")
                duplicates.append(record.get('email'))

        return len(added), len(duplicates), duplicates

    @staticmethod
    def delete(student_id):
        """
        Delete a student while keeping their responses in the reports.

        Each response gets the student's email appended to its comment and is
        moved onto the placeholder student, so re-adding the same email later
        restores them.
        """
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT email FROM students WHERE id = ?', (student_id,))
            row = cursor.fetchone()
            if not row or student_id == PLACEHOLDER_STUDENT_ID:
                raise StudentNotFound()
            email = row['email']

            cursor.execute('SELECT id, comment FROM feedback_responses WHERE student_id = ?', (student_id,))
            responses = cursor.fetchall()

            if responses:
                cursor.execute('''
                    INSERT OR IGNORE INTO students (id, name, email, semester, course, division)
                    VALUES (?, '[Deleted Students]', ?, 1, ?, 'X')
                ''', (PLACEHOLDER_STUDENT_ID, PLACEHOLDER_STUDENT_EMAIL, DEFAULT_COURSE))

            for response in responses:
                cursor.execute('''
                    UPDATE feedback_responses SET student_id = ?, comment = ? WHERE id = ?
                ''', (PLACEHOLDER_STUDENT_ID, add_deleted_marker(response['comment'], email), response['id']))

            cursor.execute('DELETE FROM draft_feedback WHERE student_id = ?', (student_id,))
            cursor.execute('DELETE FROM students WHERE id = ?', (student_id,))
            logger.info(f"Deleted student {email}, parked {len(responses)} responses")
            return len(responses)

    @staticmethod
    def get(student_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {STUDENT_COLUMNS} FROM students WHERE id = ?', (student_id,))
            return row_to_dict(cursor.fetchone())

    @staticmethod
    def get_by_email(email):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {STUDENT_COLUMNS} FROM students WHERE email = ?', (normalize_email(email),))
            return row_to_dict(cursor.fetchone())

    @staticmethod
    def get_all(semester=None, course=None):
        """Get all students, optionally for one semester and course; the placeholder is never listed.

        course matches either the regular course or the honours course.
        """
        query = f'SELECT {STUDENT_COLUMNS} FROM students WHERE id != ?'
        params = [PLACEHOLDER_STUDENT_ID]
        if semester is not None:
            query += ' AND semester = ?'
            params.append(int(semester))
        if course:
            query += ' AND (UPPER(course) = ? OR UPPER(honours_course) = ?)'
            params.extend([upper(course), upper(course)])
        query += ' ORDER BY semester, course, division, name'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def count():
        """Get total number of students."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM students WHERE id != ?', (PLACEHOLDER_STUDENT_ID,))
            return cursor.fetchone()[0]

import logging
import sqlite3
import uuid

from .database import get_db, row_to_dict
from utils import normalize_email
from portal.errors import InvalidRequest, DuplicateFaculty, EmailInUse, FacultyNotFound

logger = logging.getLogger(__name__)

FACULTY_COLUMNS = 'id, name, email, faculty_code'


def _student_email_exists(cursor, email):
    cursor.execute('SELECT 1 FROM students WHERE email = ?', (email,))
    return cursor.fetchone() is not None


class Faculty:
    @staticmethod
    def add(name, email, faculty_code, faculty_id=None):
        """Add a faculty member; the email must not belong to another faculty member or a student."""
        name = str(name or '').strip()
        email = normalize_email(email)
        faculty_code = str(faculty_code or '').strip()
        if not name or not email or not faculty_code:
            raise InvalidRequest("Missing required fields (name, email, faculty_code)")

        faculty = {
            'id': faculty_id or f"fac_{uuid.uuid4().hex[:12]}",
            'name': name,
            'email': email,
            'faculty_code': faculty_code,
        }

        with get_db() as conn:
            cursor = conn.cursor()
            if _student_email_exists(cursor, email):
                raise EmailInUse('student')
            try:
                cursor.execute(f'''
                    INSERT INTO faculty ({FACULTY_COLUMNS})
                    VALUES (:id, :name, :email, :faculty_code)
                ''', faculty)
            except sqlite3.IntegrityError:
                raise DuplicateFaculty()

        logger.info(f"Added faculty {email}")
        return faculty

    @staticmethod
    def bulk_add(records):
        """Add multiple faculty members at once.
        records: list of dicts with name, email and optionally faculty_code (or code)
        Returns: (created_count, skipped_count, errors)
        """
        created = 0
        skipped = 0
        errors = []

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT email FROM faculty')
            existing = {row['email'] for row in cursor.fetchall()}

            for idx, record in enumerate(records):
                name = str(record.get('name') or '').strip()
                email = normalize_email(record.get('email'))
                if not name or not email:
                    errors.append(f"Row {idx + 1}: Missing required fields")
                    continue
                if email in existing or _student_email_exists(cursor, email):
                    skipped += 1
                    continue

                code = record.get('faculty_code') or record.get('code')
                cursor.execute(f'''
                    INSERT INTO faculty ({FACULTY_COLUMNS}) VALUES (?, ?, ?, ?)
                ''', (f"fac_{uuid.uuid4().hex[:12]}", name, email, str(code).strip() if code else None))
                existing.add(email)
                created += 1

        logger.info(f"Bulk added {created} faculty, skipped {skipped}, {len(errors)} invalid rows")
        return created, skipped, errors

    @staticmethod
    def get(faculty_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {FACULTY_COLUMNS} FROM faculty WHERE id = ?', (faculty_id,))
            return row_to_dict(cursor.fetchone())

    @staticmethod
    def get_all():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {FACULTY_COLUMNS} FROM faculty ORDER BY name')
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def names_by_email(cursor):
        """email -> name, read on an open cursor"""
        cursor.execute('SELECT email, name FROM faculty')
        return {row[0]: row[1] for row in cursor.fetchall()}

    @staticmethod
    def delete(faculty_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM faculty WHERE id = ?', (faculty_id,))
            if cursor.rowcount == 0:
                raise FacultyNotFound()
        logger.info(f"Deleted faculty {faculty_id}")

    @staticmethod
    def bulk_delete(faculty_ids):
        if not faculty_ids:
            return 0
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM faculty WHERE id IN ({', '.join(['?'] * len(faculty_ids))})",
                           list(faculty_ids))
            return cursor.rowcount

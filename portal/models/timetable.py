import logging

from .database import get_db
from config import DEFAULT_ACADEMIC_YEAR
from utils import upper, optional_upper, normalize_email, normalize_semester

logger = logging.getLogger(__name__)

TIMETABLE_COLUMNS = ('id, subject_name, subject_code, faculty_name, faculty_email, semester, course, '
                     'division, batch, academic_year')


def clean_entry(entry):
    """Normalize one timetable row; returns None when a required field is missing or invalid."""
    subject_name = str(entry.get('subject_name') or '').strip()
    faculty_email = normalize_email(entry.get('faculty_email'))
    semester = normalize_semester(entry.get('semester'))
    course = upper(entry.get('course'))
    if not subject_name or not faculty_email or semester is None or not course:
        return None
    return {
        'subject_name': subject_name,
        'subject_code': str(entry.get('subject_code') or '').strip() or None,
        'faculty_name': str(entry.get('faculty_name') or '').strip() or None,
        'faculty_email': faculty_email,
        'semester': semester,
        'course': course,
        # Honours/minor rows carry no division
        'division': upper(entry.get('division')),
        'batch': optional_upper(entry.get('batch')),
        'academic_year': str(entry.get('academic_year') or DEFAULT_ACADEMIC_YEAR).strip(),
    }


class Timetable:
    @staticmethod
    def bulk_add(entries):
        """Add timetable rows.
        Returns: (added_count, skipped_count)
        """
        rows = []
        skipped = 0
        for entry in entries:
            cleaned = clean_entry(entry)
            if cleaned is None:
                skipped += 1
                continue
            rows.append(cleaned)

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.executemany('''
                INSERT INTO timetable (subject_name, subject_code, faculty_name, faculty_email,
                                       semester, course, division, batch, academic_year)
                VALUES (:subject_name, :subject_code, :faculty_name, :faculty_email,
                        :semester, :course, :division, :batch, :academic_year)
            ''', rows)

        logger.info(f"Added {len(rows)} timetable entries, skipped {skipped}")
        return len(rows), skipped

    @staticmethod
    def get_all(academic_year=None):
        query = f'SELECT {TIMETABLE_COLUMNS} FROM timetable'
        params = ()
        if academic_year:
            query += ' WHERE academic_year = ?'
            params = (academic_year,)
        query += ' ORDER BY semester, course, division, subject_name'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def clear(academic_year=None):
        with get_db() as conn:
            cursor = conn.cursor()
            if academic_year:
                cursor.execute('DELETE FROM timetable WHERE academic_year = ?', (academic_year,))
            else:
                cursor.execute('DELETE FROM timetable')
            deleted = cursor.rowcount
        logger.info(f"Deleted {deleted} timetable entries")
        return deleted

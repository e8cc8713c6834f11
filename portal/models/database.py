import sqlite3
import os
from contextlib import contextmanager
import logging

from config import DATABASE_PATH as CONFIGURED_PATH, PLACEHOLDER_STUDENT_ID
from portal.errors import PortalError

logger = logging.getLogger(__name__)

if os.path.isabs(CONFIGURED_PATH):
    DATABASE_PATH = CONFIGURED_PATH
else:
    DATABASE_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
                                 CONFIGURED_PATH)


def get_db_path():
    """Get the database path and ensure the directory exists."""
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
    return DATABASE_PATH


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = None
    try:
        conn = sqlite3.connect(get_db_path())
        conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    except PortalError:
        if conn:
            conn.rollback()
        raise
    except Exception as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn:
            conn.close()


def row_to_dict(row):
    return dict(row) if row is not None else None


def init_db():
    """Initialize the database with all required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        # Students table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS students (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                semester INTEGER NOT NULL,
                course TEXT NOT NULL DEFAULT 'IT',
                division TEXT NOT NULL,
                batch TEXT,
                honours_course TEXT,
                honours_batch TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_students_sem_course
            ON students(semester, course)
        ''')

        # Timetable table (faculty-subject-class rows forms are generated from)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS timetable (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                subject_name TEXT NOT NULL,
                subject_code TEXT,
                faculty_name TEXT,
                faculty_email TEXT NOT NULL,
                semester INTEGER NOT NULL,
                course TEXT NOT NULL,
                division TEXT NOT NULL DEFAULT '',
                batch TEXT,
                academic_year TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_timetable_year
            ON timetable(academic_year)
        ''')

        # Feedback forms table
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS feedback_forms (
                id TEXT PRIMARY KEY,
                subject_name TEXT NOT NULL,
                subject_code TEXT,
                faculty_name TEXT NOT NULL,
                faculty_email TEXT NOT NULL,
                semester INTEGER NOT NULL,
                course TEXT NOT NULL DEFAULT 'IT',
                division TEXT NOT NULL DEFAULT '',
                batch TEXT,
                academic_year TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'closed')),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_forms_class
            ON feedback_forms(semester, course, division, status)
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_forms_faculty
            ON feedback_forms(faculty_email)
        ''')

        # Snapshot of the question bank taken when a form is generated
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS form_questions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                form_id TEXT NOT NULL,
                original_param_id TEXT NOT NULL,
                question_text TEXT NOT NULL,
                position INTEGER NOT NULL,
                question_type TEXT NOT NULL DEFAULT 'scale_1_10'
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_form_questions_form
            ON form_questions(form_id)
        ''')

        # Live question bank
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS feedback_parameters (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                position INTEGER NOT NULL,
                form_type TEXT NOT NULL DEFAULT 'theory',
                question_type TEXT NOT NULL DEFAULT 'scale_1_10'
            )
        ''')

        # Student submissions
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS feedback_responses (
                id TEXT PRIMARY KEY,
                form_id TEXT NOT NULL,
                student_id TEXT NOT NULL,
                comment TEXT,
                submitted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # One response per student and form; the deleted-students placeholder may hold many
        cursor.execute(f'''
            CREATE UNIQUE INDEX IF NOT EXISTS idx_responses_form_student
            ON feedback_responses(form_id, student_id)
            WHERE student_id != '{PLACEHOLDER_STUDENT_ID}'
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_responses_student
            ON feedback_responses(student_id)
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS feedback_response_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                response_id TEXT NOT NULL,
                parameter_id TEXT NOT NULL,
                rating INTEGER NOT NULL,
                question_text TEXT,
                question_type TEXT
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_response_items_response
            ON feedback_response_items(response_id)
        ''')

        # Faculty directory; form faculty names are filled from it when a timetable row has none
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS faculty (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                faculty_code TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # One saved in-progress feedback session per student
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS draft_feedback (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL UNIQUE,
                form_data TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        conn.commit()
        logger.info("Database initialized successfully")

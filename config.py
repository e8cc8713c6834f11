import os

# Database configuration
DATABASE_PATH = os.environ.get('FEEDBACK_DB_PATH', os.path.join('data', 'feedback.db'))

# Upload configuration
UPLOAD_FOLDER = 'uploads'
ALLOWED_EXTENSIONS = {'xlsx', 'xls'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

DEFAULT_ACADEMIC_YEAR = '2025-26'
DEFAULT_COURSE = 'IT'

# Regular courses; anything else offered in a timetable is an honours/minor track
KNOWN_COURSES = ['IT', 'AIDS', 'CS', 'EXTC', 'MECH', 'CIVIL']

# Responses of deleted students are parked on this student so they keep counting in reports
PLACEHOLDER_STUDENT_ID = 'placeholder_deleted_students'
PLACEHOLDER_STUDENT_EMAIL = 'deleted_placeholder@system.local'
DELETED_EMAIL_MARKER = '__original_student_email:'

# Question types
YES_NO = 'yes_no'
SCALE_3 = 'scale_3'
SCALE_1_10 = 'scale_1_10'
QUESTION_TYPES = [YES_NO, SCALE_3, SCALE_1_10]

# Raw answer range per question type; untyped answers are kept within 0-10
RATING_RANGES = {YES_NO: (0, 1), SCALE_3: (1, 3), SCALE_1_10: (1, 10)}
DEFAULT_RATING_RANGE = (0, 10)
FORM_TYPES = ['theory', 'lab']

# Default question bank
DEFAULT_THEORY_QUESTIONS = [
    {'id': 'theory_1', 'position': 1, 'question_type': SCALE_3,
     'text': "Interaction with students regarding the subject taught and query-handling during lectures"},
    {'id': 'theory_2', 'position': 2, 'question_type': SCALE_3,
     'text': "Number of numerical problems solved/case studies and practical applications discussed"},
    {'id': 'theory_3', 'position': 3, 'question_type': SCALE_3,
     'text': "Audibility and overall command on verbal communication"},
    {'id': 'theory_4', 'position': 4, 'question_type': SCALE_3,
     'text': "Command on the subject taught"},
    {'id': 'theory_5', 'position': 5, 'question_type': SCALE_3,
     'text': "Use of audio/visuals aids (e.g. OHP slides, LCD projector, PA system, charts, models etc.)"},
    {'id': 'theory_6', 'position': 6, 'question_type': SCALE_3,
     'text': "Whether the test-syllabus was covered satisfactorily before the term tests?"},
    {'id': 'theory_7', 'position': 7, 'question_type': SCALE_1_10,
     'text': "Evaluation of the faculty in the scale of 1-10"},
]

DEFAULT_LAB_QUESTIONS = [
    {'id': 'lab_1', 'position': 1, 'question_type': YES_NO,
     'text': "The practical/tutorial sessions/assignments were well explained and planned to cover the syllabus thoroughly"},
    {'id': 'lab_2', 'position': 2, 'question_type': YES_NO,
     'text': "The practical/tutorial sessions/assignments were useful for conceptual understanding of the topics"},
    {'id': 'lab_3', 'position': 3, 'question_type': SCALE_1_10,
     'text': "Evaluation of the faculty in the scale of 1-10"},
]

# Rating colour bands
GOOD_THRESHOLD = 7
MEDIUM_THRESHOLD = 5

# PDF reports
REPORTS_FOLDER = 'reports'
COLLEGE_NAME = os.environ.get('COLLEGE_NAME', 'FACULTY FEEDBACK PORTAL')

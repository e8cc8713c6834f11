"""
Service for handling Excel file uploads for student and faculty data.
"""

import pandas as pd
import logging
from typing import Tuple, Optional
from portal.models.faculty import Faculty
from portal.models.student import Student
from utils import normalize_semester

logger = logging.getLogger(__name__)

# Required headers for student Excel file
REQUIRED_HEADERS = ['name', 'email', 'semester', 'course', 'division']
OPTIONAL_HEADERS = ['batch', 'honours_course', 'honours_batch']


def _text(value) -> Optional[str]:
    if pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def validate_excel_file(file_path: str) -> Tuple[bool, str, Optional[pd.DataFrame]]:
    """
    Validate the uploaded Excel file.

    Returns:
        Tuple of (is_valid, error_message, dataframe)
    """
    try:
        df = pd.read_excel(file_path)

        if df.empty:
            return False, "Excel file is empty", None

        # Convert column names to lowercase for comparison
        df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')

        missing_headers = [h for h in REQUIRED_HEADERS if h not in df.columns]
        if missing_headers:
            return False, f"Missing required columns: {', '.join(missing_headers)}. Required: {', '.join(REQUIRED_HEADERS)}", None

        if df[REQUIRED_HEADERS].isnull().any().any():
            return False, "Excel file contains empty values in required columns", None

        for column in OPTIONAL_HEADERS:
            if column not in df.columns:
                df[column] = None

        df['semester'] = df['semester'].map(normalize_semester)
        invalid = df['semester'].isnull().sum()
        if invalid:
            return False, f"{invalid} rows have a semester outside 1-8", None

        df = df[df['email'].astype(str).str.strip() != '']

        if df.empty:
            return False, "No valid student records found after cleaning", None

        return True, "", df

    except Exception as e:
        logger.error(f"Error validating Excel file: {e}")
        return False, f"Error reading Excel file: {str(e)}", None


def process_student_excel(file_path: str) -> Tuple[bool, str, dict]:
    """
    Process the uploaded Excel file and add students to database.

    Returns:
        Tuple of (success, message, stats_dict)
    """
    is_valid, error_msg, df = validate_excel_file(file_path)
    if not is_valid:
        return False, error_msg, {}

    students_data = []
    for _, row in df.iterrows():
        students_data.append({
            'name': _text(row['name']),
            'email': _text(row['email']),
            'semester': int(row['semester']),
            'course': _text(row['course']),
            'division': _text(row['division']),
            'batch': _text(row['batch']),
            'honours_course': _text(row['honours_course']),
            'honours_batch': _text(row['honours_batch']),
        })

    added_count, duplicate_count, duplicates = Student.bulk_add(students_data)

    stats = {
        'total': len(students_data),
        'added': added_count,
        'duplicates': duplicate_count,
        'duplicate_list': duplicates[:20]  # Limit to first 20 for display
    }

    if added_count > 0:
        message = f"Successfully added {added_count} students. "
        if duplicate_count > 0:
            message += f"{duplicate_count} duplicates were skipped."
        return True, message, stats
    else:
        return False, f"No new students added. All {duplicate_count} records were duplicates.", stats


FACULTY_REQUIRED_HEADERS = ['name', 'email']


def process_faculty_excel(file_path: str) -> Tuple[bool, str, dict]:
    """
    Add faculty from an Excel sheet with name, email and an optional faculty_code (or code) column.

    Returns:
        Tuple of (success, message, stats_dict)
    """
    try:
        df = pd.read_excel(file_path)
    except Exception as e:
        logger.error(f"Error reading faculty Excel file: {e}")
        return False, f"Error reading Excel file: {str(e)}", {}

    if df.empty:
        return False, "Excel file is empty", {}

    df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')
    missing_headers = [h for h in FACULTY_REQUIRED_HEADERS if h not in df.columns]
    if missing_headers:
        return False, f"Missing required columns: {', '.join(missing_headers)}. Required: {', '.join(FACULTY_REQUIRED_HEADERS)}", {}

    code_column = 'faculty_code' if 'faculty_code' in df.columns else 'code' if 'code' in df.columns else None
    records = [
        {
            'name': _text(row['name']),
            'email': _text(row['email']),
            'faculty_code': _text(row[code_column]) if code_column else None,
        }
        for _, row in df.iterrows()
    ]

    created, skipped, errors = Faculty.bulk_add(records)
    stats = {'total': len(records), 'added': created, 'skipped': skipped, 'errors': errors[:10]}

    if created > 0:
        return True, f"Successfully added {created} faculty members.", stats
    return False, "No new faculty added.", stats

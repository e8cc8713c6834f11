"""
Service for timetable uploads and for generating feedback forms from the timetable.
"""

import pandas as pd
import logging
from typing import Tuple, List, Dict, Optional
from portal.models.database import get_db
from portal.models.faculty import Faculty
from portal.models.feedback_form import FeedbackForm
from portal.models.timetable import Timetable, clean_entry

logger = logging.getLogger(__name__)

# Required headers for timetable Excel file
TIMETABLE_REQUIRED_HEADERS = ['subject_name', 'faculty_email', 'semester', 'course']
TIMETABLE_OPTIONAL_HEADERS = ['subject_code', 'faculty_name', 'division', 'batch', 'academic_year']


def validate_timetable_excel(file_path: str) -> Tuple[bool, str, Optional[pd.DataFrame]]:
    """
    Validate the uploaded timetable Excel file.

    Returns:
        Tuple of (is_valid, error_message, dataframe)
    """
    try:
        df = pd.read_excel(file_path)

        if df.empty:
            return False, "Excel file is empty", None

        df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')

        missing_headers = [h for h in TIMETABLE_REQUIRED_HEADERS if h not in df.columns]
        if missing_headers:
            return False, f"Missing required columns: {', '.join(missing_headers)}. Required: {', '.join(TIMETABLE_REQUIRED_HEADERS)}", None

        for column in TIMETABLE_OPTIONAL_HEADERS:
            if column not in df.columns:
                df[column] = None

        # Honours rows legitimately leave division empty, so only the required columns are checked
        df = df.dropna(subset=TIMETABLE_REQUIRED_HEADERS)
        df = df.astype(object).where(pd.notnull(df), None)

        if df.empty:
            return False, "No valid timetable records found after cleaning", None

        return True, "", df

    except Exception as e:
        logger.error(f"Error validating timetable Excel file: {e}")
        return False, f"Error reading Excel file: {str(e)}", None


def process_timetable_excel(file_path: str, academic_year: Optional[str] = None) -> Tuple[bool, str, dict]:
    """
    Process the uploaded Excel file and add timetable rows to database.

    Returns:
        Tuple of (success, message, stats_dict)
    """
    is_valid, error_msg, df = validate_timetable_excel(file_path)
    if not is_valid:
        return False, error_msg, {}

    entries = df.to_dict('records')
    if academic_year:
        for entry in entries:
            entry['academic_year'] = entry.get('academic_year') or academic_year

    added_count, skipped_count = Timetable.bulk_add(entries)
    stats = {
        'total': len(entries),
        'added': added_count,
        'skipped': skipped_count
    }

    if added_count > 0:
        message = f"Successfully added {added_count} timetable entries. "
        if skipped_count > 0:
            message += f"{skipped_count} invalid rows were skipped."
        return True, message, stats
    else:
        return False, f"No timetable entries added. All {skipped_count} rows were invalid.", stats


def generate_forms(entries: List[Dict]) -> Tuple[List[Dict], int]:
    """
    Create one active feedback form per timetable row.

    Rows missing a subject or faculty, with a semester outside 1-8, or
    duplicating an existing form for the same class are skipped. A row
    without a faculty name takes it from the faculty directory.

    Returns:
        Tuple of (created_forms, skipped_count)
    """
    created = []
    skipped = 0

    with get_db() as conn:
        cursor = conn.cursor()
        faculty_names = Faculty.names_by_email(cursor)

        for entry in entries:
            cleaned = clean_entry(entry)
            if cleaned is None:
                skipped += 1
                continue

            if FeedbackForm.exists(cursor, cleaned['subject_name'], cleaned['faculty_email'],
                                   cleaned['semester'], cleaned['course'], cleaned['division'],
                                   cleaned['batch'], cleaned['academic_year']):
                logger.debug(f"Form already exists for {cleaned['subject_name']} / {cleaned['faculty_email']}")
                skipped += 1
                continue

            form = FeedbackForm.create(
                subject_name=cleaned['subject_name'],
                faculty_name=(cleaned['faculty_name'] or faculty_names.get(cleaned['faculty_email'])
                              or cleaned['faculty_email']),
                faculty_email=cleaned['faculty_email'],
                semester=cleaned['semester'],
                course=cleaned['course'],
                division=cleaned['division'],
                batch=cleaned['batch'],
                subject_code=cleaned['subject_code'],
                academic_year=cleaned['academic_year'],
                cursor=cursor,
            )
            created.append(form)

    logger.info(f"Generated {len(created)} forms, skipped {skipped}")
    return created, skipped


def generate_forms_from_timetable(academic_year: Optional[str] = None) -> Tuple[List[Dict], int]:
    return generate_forms(Timetable.get_all(academic_year))

from flask import Blueprint, request, jsonify
from werkzeug.utils import secure_filename
import os
import logging
from portal.errors import PortalError, InvalidRequest, FacultyNotFound
from portal.models.student import Student
from portal.models.faculty import Faculty
from portal.models.parameter import FeedbackParameter
from portal.models.feedback_form import FeedbackForm
from portal.models.timetable import Timetable
from portal.models.response import FeedbackResponse
from portal.services.excel_service import process_student_excel, process_faculty_excel
from portal.services.timetable_service import process_timetable_excel, generate_forms, generate_forms_from_timetable
from portal.services.eligibility import completion_matrix, form_completion, is_honours_course
from config import UPLOAD_FOLDER, ALLOWED_EXTENSIONS, MAX_FILE_SIZE
from utils import normalize_semester

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def allowed_file(filename):
    """Check if file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def error_response(e, action):
    if isinstance(e, PortalError):
        return jsonify(e.to_dict()), e.status_code
    logger.error(f"Error {action}: {e}")
    return jsonify({'error': f'Error {action}: {str(e)}'}), 500


def save_upload():
    """Validate and save the uploaded Excel file; returns its path."""
    if 'file' not in request.files:
        raise InvalidRequest('No file uploaded')

    file = request.files['file']
    if file.filename == '':
        raise InvalidRequest('No file selected')
    if not allowed_file(file.filename):
        raise InvalidRequest('Invalid file type. Please upload an Excel file (.xlsx or .xls)')

    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)
    if file_size > MAX_FILE_SIZE:
        raise InvalidRequest(f'File too large. Maximum size is {MAX_FILE_SIZE / (1024*1024):.0f}MB')

    os.makedirs(UPLOAD_FOLDER, exist_ok=True)
    filepath = os.path.join(UPLOAD_FOLDER, secure_filename(file.filename))
    file.save(filepath)
    return filepath


def process_upload(processor, *args):
    filepath = save_upload()
    try:
        success, message, stats = processor(filepath, *args)
    finally:
        try:
            os.remove(filepath)
        except OSError as e:
            logger.warning(f"Could not delete {filepath}: {e}")
    return jsonify({'success': success, 'message': message, 'stats': stats}), (200 if success else 400)


@admin_bp.route('/dashboard', methods=['GET'])
def dashboard():
    try:
        forms = FeedbackForm.get_all()
        return jsonify({
            'students': Student.count(),
            'forms': len(forms),
            'active_forms': sum(1 for f in forms if f['status'] == 'active'),
            'responses': FeedbackResponse.count(),
        })
    except Exception as e:
        return error_response(e, 'loading dashboard')


# Students

@admin_bp.route('/students', methods=['GET'])
def list_students():
    """Get list of students, optionally filtered by semester and course."""
    semester = request.args.get('semester', '').strip()
    course = request.args.get('course', '').strip()
    try:
        students = Student.get_all(semester=normalize_semester(semester) if semester else None, course=course)
        return jsonify({'students': students, 'count': len(students)})
    except Exception as e:
        return error_response(e, 'fetching students')


@admin_bp.route('/students', methods=['POST'])
def add_student():
    data = request.get_json(silent=True) or {}
    try:
        missing = [f for f in ('name', 'email', 'semester', 'division') if not data.get(f)]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")
        semester = normalize_semester(data['semester'])
        if semester is None:
            raise InvalidRequest('Semester must be between 1 and 8')

        student = Student.add(
            data['name'], data['email'], semester, data.get('course'), data['division'],
            data.get('batch'), data.get('honours_course'), data.get('honours_batch'),
        )
        return jsonify(student), 201
    except Exception as e:
        return error_response(e, 'creating student')


@admin_bp.route('/students/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    try:
        parked = Student.delete(student_id)
        return jsonify({'success': True, 'message': f'Student deleted, {parked} responses kept'})
    except Exception as e:
        return error_response(e, 'deleting student')


@admin_bp.route('/students/upload', methods=['POST'])
def upload_students_excel():
    """Upload students via Excel file."""
    try:
        return process_upload(process_student_excel)
    except Exception as e:
        return error_response(e, 'processing file')


# Faculty

@admin_bp.route('/faculty', methods=['GET'])
def list_faculty():
    try:
        return jsonify(Faculty.get_all())
    except Exception as e:
        return error_response(e, 'fetching faculty')


@admin_bp.route('/faculty', methods=['POST'])
def add_faculty():
    data = request.get_json(silent=True) or {}
    try:
        faculty = Faculty.add(data.get('name'), data.get('email'), data.get('faculty_code') or data.get('facultyCode'))
        return jsonify(faculty), 201
    except Exception as e:
        return error_response(e, 'creating faculty')


@admin_bp.route('/faculty/<faculty_id>', methods=['GET'])
def get_faculty(faculty_id):
    try:
        faculty = Faculty.get(faculty_id)
        if not faculty:
            raise FacultyNotFound()
        return jsonify(faculty)
    except Exception as e:
        return error_response(e, 'fetching faculty')


@admin_bp.route('/faculty/<faculty_id>', methods=['DELETE'])
def delete_faculty(faculty_id):
    try:
        Faculty.delete(faculty_id)
        return jsonify({'success': True})
    except Exception as e:
        return error_response(e, 'deleting faculty')


@admin_bp.route('/faculty/bulk', methods=['POST'])
def bulk_add_faculty():
    data = request.get_json(silent=True) or {}
    records = data.get('faculty')
    try:
        if not records or not isinstance(records, list):
            raise InvalidRequest('No faculty provided')
        created, skipped, errors = Faculty.bulk_add(records)
        if not created:
            return jsonify({'error': 'No valid faculty to create', 'details': errors[:10]}), 400
        return jsonify({
            'message': f'Created {created} faculty member(s)',
            'count': created,
            'skipped': skipped,
            'errors': errors[:10],
        }), 201
    except Exception as e:
        return error_response(e, 'creating faculty')


@admin_bp.route('/faculty/bulk', methods=['DELETE'])
def bulk_delete_faculty():
    data = request.get_json(silent=True) or {}
    ids = data.get('ids')
    try:
        if not ids or not isinstance(ids, list):
            raise InvalidRequest('No faculty IDs provided')
        count = Faculty.bulk_delete(ids)
        return jsonify({'message': f'Deleted {count} faculty member(s)', 'count': count})
    except Exception as e:
        return error_response(e, 'deleting faculty')


@admin_bp.route('/faculty/upload', methods=['POST'])
def upload_faculty_excel():
    try:
        return process_upload(process_faculty_excel)
    except Exception as e:
        return error_response(e, 'processing file')


# Timetable

@admin_bp.route('/timetable', methods=['GET'])
def list_timetable():
    try:
        entries = Timetable.get_all(request.args.get('academic_year'))
        return jsonify(entries)
    except Exception as e:
        return error_response(e, 'fetching timetable')


@admin_bp.route('/timetable', methods=['POST'])
def add_timetable():
    data = request.get_json(silent=True) or {}
    entries = data.get('entries')
    try:
        if not entries or not isinstance(entries, list):
            raise InvalidRequest('No entries provided')
        added, skipped = Timetable.bulk_add(entries)
        return jsonify({'message': f'Added {added} timetable entries', 'added': added, 'skipped': skipped}), 201
    except Exception as e:
        return error_response(e, 'saving timetable')


@admin_bp.route('/timetable', methods=['DELETE'])
def clear_timetable():
    academic_year = request.args.get('academic_year')
    try:
        deleted = Timetable.clear(academic_year)
        suffix = f' for {academic_year}' if academic_year else ''
        return jsonify({'message': f'Deleted {deleted} timetable entries{suffix}', 'count': deleted})
    except Exception as e:
        return error_response(e, 'deleting timetable')


@admin_bp.route('/timetable/upload', methods=['POST'])
def upload_timetable_excel():
    try:
        return process_upload(process_timetable_excel, request.form.get('academic_year'))
    except Exception as e:
        return error_response(e, 'processing file')


# Forms

@admin_bp.route('/forms', methods=['GET'])
def list_forms():
    try:
        semester = request.args.get('semester')
        forms = FeedbackForm.get_all(
            semester=normalize_semester(semester) if semester else None,
            course=request.args.get('course'),
            faculty_email=request.args.get('faculty_email'),
            status=request.args.get('status'),
        )
        return jsonify(forms)
    except Exception as e:
        return error_response(e, 'fetching forms')


@admin_bp.route('/forms/generate', methods=['POST'])
def generate():
    """Generate forms from posted timetable rows, or from the stored timetable when none are posted."""
    data = request.get_json(silent=True) or {}
    try:
        if data.get('forms'):
            created, skipped = generate_forms(data['forms'])
        else:
            created, skipped = generate_forms_from_timetable(data.get('academic_year'))
        return jsonify({
            'message': f'Created {len(created)} form(s)',
            'forms': created,
            'skipped': skipped,
        }), 201
    except Exception as e:
        return error_response(e, 'creating forms')


@admin_bp.route('/forms/<form_id>/status', methods=['POST'])
def set_form_status(form_id):
    data = request.get_json(silent=True) or {}
    try:
        FeedbackForm.set_status(form_id, data.get('status'))
        return jsonify({'message': f"Form {data.get('status')}"})
    except Exception as e:
        return error_response(e, 'updating form')


@admin_bp.route('/forms/<form_id>', methods=['DELETE'])
def delete_form(form_id):
    try:
        deleted = FeedbackForm.delete(form_id)
        return jsonify({'message': 'Form deleted successfully', 'responses_deleted': deleted})
    except Exception as e:
        return error_response(e, 'deleting form')


# Question bank

@admin_bp.route('/parameters', methods=['GET'])
def list_parameters():
    try:
        return jsonify(FeedbackParameter.get_all(request.args.get('form_type')))
    except Exception as e:
        return error_response(e, 'fetching parameters')


@admin_bp.route('/parameters', methods=['POST'])
def add_parameter():
    data = request.get_json(silent=True) or {}
    try:
        parameter = FeedbackParameter.add(
            data.get('text'), data.get('form_type', 'theory'), data.get('question_type', 'scale_1_10'),
            data.get('position'),
        )
        return jsonify(parameter), 201
    except Exception as e:
        return error_response(e, 'creating parameter')


@admin_bp.route('/parameters/<parameter_id>', methods=['PUT'])
def update_parameter(parameter_id):
    data = request.get_json(silent=True) or {}
    try:
        parameter = FeedbackParameter.update(
            parameter_id, text=data.get('text'), position=data.get('position'),
            form_type=data.get('form_type'), question_type=data.get('question_type'),
        )
        return jsonify(parameter)
    except Exception as e:
        return error_response(e, 'updating parameter')


@admin_bp.route('/parameters/<parameter_id>', methods=['DELETE'])
def delete_parameter(parameter_id):
    try:
        FeedbackParameter.delete(parameter_id)
        return jsonify({'message': 'Parameter deleted successfully'})
    except Exception as e:
        return error_response(e, 'deleting parameter')


@admin_bp.route('/parameters/reset', methods=['POST'])
def reset_parameters():
    try:
        count = FeedbackParameter.reset_defaults()
        return jsonify({'message': f'Reset to {count} default questions'})
    except Exception as e:
        return error_response(e, 'resetting parameters')


# Monitoring

@admin_bp.route('/feedback/monitor', methods=['GET'])
def monitor():
    """
    Completion status of a class.

    Without form_id every student appears once and counts as filled only when
    all their eligible forms are filled; with form_id only that form's
    audience is listed.
    """
    semester = normalize_semester(request.args.get('semester'))
    course = request.args.get('course', '').strip()
    batch = request.args.get('batch', '').strip() or None
    form_id = request.args.get('form_id')

    try:
        if semester is None or not course:
            raise InvalidRequest('Semester and course are required')

        forms = FeedbackForm.get_all(semester=semester, course=course, batch=batch)
        if not forms:
            return jsonify({'forms': [], 'students': [], 'summary': {'total': 0, 'filled': 0, 'pending': 0}})

        responses = FeedbackResponse.get_all(form_ids=[f['id'] for f in forms], with_items=False)
        students = Student.get_all(semester=semester)

        if form_id:
            form = next((f for f in forms if f['id'] == form_id), None)
            entries = form_completion(form, students, responses) if form else []
        else:
            entries = completion_matrix(forms, students, responses)
            for entry in entries:
                entry['eligible_form_ids'] = sorted(entry['eligible_form_ids'])
                entry['filled_form_ids'] = sorted(entry['filled_form_ids'])

        filled = sum(1 for e in entries if e['filled'])
        return jsonify({
            'forms': forms,
            'honours': is_honours_course(course),
            'students': entries,
            'summary': {'total': len(entries), 'filled': filled, 'pending': len(entries) - filled},
        })
    except Exception as e:
        return error_response(e, 'fetching monitor data')

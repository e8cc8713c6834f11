from flask import Blueprint, request, jsonify, make_response, current_app
import os
from portal.errors import PortalError, FormNotFound, InvalidRequest
from portal.models.feedback_form import FeedbackForm
from portal.models.response import FeedbackResponse
from portal.services.reports import form_report, faculty_report, faculty_summary
from report_generator import generate_form_report_pdf, generate_faculty_report_pdf
from report_non_submission import generate_non_submission_report
from utils import normalize_semester, normalize_email

report_bp = Blueprint('report', __name__, url_prefix='/report')


def error_response(e, action):
    if isinstance(e, PortalError):
        return jsonify(e.to_dict()), e.status_code
    current_app.logger.error(f"Error {action}: {str(e)}")
    return jsonify({'error': f'Error {action}: {str(e)}'}), 500


def pdf_response(pdf_path, download=False):
    """Stream a generated PDF back and remove it from disk."""
    if not pdf_path or not os.path.exists(pdf_path):
        raise ValueError("PDF file was not generated properly")

    with open(pdf_path, 'rb') as f:
        pdf_content = f.read()

    response = make_response(pdf_content)
    response.headers['Content-Type'] = 'application/pdf'
    disposition = 'attachment' if download else 'inline'
    response.headers['Content-Disposition'] = f'{disposition}; filename={os.path.basename(pdf_path)}'

    try:
        os.remove(pdf_path)
    except OSError as e:
        current_app.logger.warning(f"Could not delete {pdf_path}: {e}")

    return response


def build_form_report(form_id):
    form = FeedbackForm.get(form_id)
    if not form:
        raise FormNotFound()
    return form_report(form, FeedbackResponse.get_all(form_id=form_id), FeedbackForm.questions(form_id))


def questions_by_form(forms):
    return {f['id']: FeedbackForm.questions(f['id']) for f in forms}


def build_faculty_report(email):
    forms = FeedbackForm.get_all(faculty_email=email)
    responses = FeedbackResponse.get_all(form_ids=[f['id'] for f in forms])
    return faculty_report(email, forms, responses, questions_by_form(forms))


@report_bp.route('/<form_id>', methods=['GET'])
def form_report_json(form_id):
    try:
        return jsonify(build_form_report(form_id))
    except Exception as e:
        return error_response(e, 'building report')


@report_bp.route('/<form_id>/pdf', methods=['GET'])
def form_report_pdf(form_id):
    try:
        pdf_path = generate_form_report_pdf(build_form_report(form_id))
        return pdf_response(pdf_path, request.args.get('download') == '1')
    except Exception as e:
        return error_response(e, 'generating PDF report')


@report_bp.route('/faculty', methods=['GET'])
def faculty_list():
    try:
        forms = FeedbackForm.get_all()
        responses = FeedbackResponse.get_all(form_ids=[f['id'] for f in forms])
        return jsonify(faculty_summary(forms, responses, questions_by_form(forms)))
    except Exception as e:
        return error_response(e, 'building faculty summary')


@report_bp.route('/faculty/<email>', methods=['GET'])
def faculty_report_json(email):
    try:
        report = build_faculty_report(normalize_email(email))
        if not report['forms']:
            return jsonify({'error': 'No feedback forms found for this faculty.'}), 404
        return jsonify(report)
    except Exception as e:
        return error_response(e, 'building report')


@report_bp.route('/faculty/<email>/pdf', methods=['GET'])
def faculty_report_pdf(email):
    try:
        report = build_faculty_report(normalize_email(email))
        if not report['forms']:
            return jsonify({'error': 'No feedback forms found for this faculty.'}), 404
        pdf_path = generate_faculty_report_pdf(report)
        return pdf_response(pdf_path, request.args.get('download') == '1')
    except Exception as e:
        return error_response(e, 'generating PDF report')


@report_bp.route('/non-submission/pdf', methods=['GET'])
def non_submission_pdf():
    semester = normalize_semester(request.args.get('semester'))
    course = request.args.get('course', '').strip()
    try:
        if semester is None or not course:
            raise InvalidRequest('Semester and course are required')
        pdf_path = generate_non_submission_report(semester, course, request.args.get('batch') or None)
        return pdf_response(pdf_path)
    except Exception as e:
        return error_response(e, 'generating report')

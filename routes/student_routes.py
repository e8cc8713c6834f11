from flask import Blueprint, request, jsonify
import logging
from portal.errors import PortalError, InvalidRequest, StudentNotFound
from portal.models.student import Student
from portal.models.draft import DraftFeedback
from portal.models.feedback_form import FeedbackForm
from portal.models.response import FeedbackResponse
from portal.services.eligibility import eligible_forms
from portal.services.submission import submit_response, submit_responses

logger = logging.getLogger(__name__)

student_bp = Blueprint('student', __name__)


def error_response(e, action):
    if isinstance(e, PortalError):
        return jsonify(e.to_dict()), e.status_code
    logger.error(f"Error {action}: {e}")
    return jsonify({'error': f'Failed {action}. Please try again.'}), 500


@student_bp.route('/student/<student_id>/forms', methods=['GET'])
def student_forms(student_id):
    """Active forms the student is eligible for, with whether each is already filled."""
    try:
        student = Student.get(student_id)
        if not student:
            raise StudentNotFound()

        forms = eligible_forms(student, FeedbackForm.get_all(semester=student['semester'], status='active'))
        filled = {r['form_id'] for r in FeedbackResponse.get_all(student_id=student_id, with_items=False)}
        for form in forms:
            form['filled'] = form['id'] in filled

        return jsonify({
            'student': student,
            'forms': forms,
            'pending': sum(1 for f in forms if not f['filled']),
        })
    except Exception as e:
        return error_response(e, 'fetching forms')


@student_bp.route('/forms/<form_id>/questions', methods=['GET'])
def form_questions(form_id):
    try:
        return jsonify(FeedbackForm.questions(form_id))
    except Exception as e:
        return error_response(e, 'fetching questions')


@student_bp.route('/responses', methods=['GET'])
def list_responses():
    try:
        responses = FeedbackResponse.get_all(
            form_id=request.args.get('formId'),
            student_id=request.args.get('studentId'),
        )
        return jsonify(responses)
    except Exception as e:
        return error_response(e, 'fetching responses')


@student_bp.route('/responses', methods=['POST'])
def submit():
    data = request.get_json(silent=True) or {}
    try:
        response_id = submit_response(
            data.get('formId'), data.get('studentId'), data.get('ratings'), data.get('comment'),
        )
        return jsonify({'message': 'Feedback submitted successfully', 'responseId': response_id}), 201
    except Exception as e:
        return error_response(e, 'to submit response')


@student_bp.route('/responses/bulk', methods=['POST'])
def submit_bulk():
    """Submit every form on the dashboard at once; forms already answered are skipped."""
    data = request.get_json(silent=True) or {}
    try:
        created = submit_responses(data.get('studentId'), data.get('submissions'))
        return jsonify({'message': 'All feedback submitted successfully', 'count': len(created)}), 201
    except Exception as e:
        return error_response(e, 'to submit feedback')


@student_bp.route('/draft-feedback', methods=['GET'])
def get_draft():
    student_id = request.args.get('studentId')
    try:
        if not student_id:
            raise InvalidRequest("Student ID is required")
        draft = DraftFeedback.get(student_id)
        return jsonify({'draft': draft['form_data'] if draft else None,
                        'updatedAt': draft['updated_at'] if draft else None})
    except Exception as e:
        return error_response(e, 'fetching draft')


@student_bp.route('/draft-feedback', methods=['PUT'])
def save_draft():
    data = request.get_json(silent=True) or {}
    student_id = data.get('studentId')
    try:
        if not student_id:
            raise InvalidRequest("Student ID is required")
        if not Student.get(student_id):
            raise StudentNotFound()
        DraftFeedback.save(student_id, {
            'currentFormIndex': data.get('currentFormIndex', 0),
            'allRatings': data.get('allRatings') or {},
            'allComments': data.get('allComments') or {},
        })
        return jsonify({'success': True})
    except Exception as e:
        return error_response(e, 'saving draft')


@student_bp.route('/draft-feedback', methods=['DELETE'])
def delete_draft():
    student_id = request.args.get('studentId')
    try:
        if not student_id:
            raise InvalidRequest("Student ID is required")
        DraftFeedback.delete(student_id)
        return jsonify({'success': True})
    except Exception as e:
        return error_response(e, 'deleting draft')

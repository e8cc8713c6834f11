"""
Builds the statistics shown on the per-form, per-faculty and summary reports.

Every function works on plain records so it can be fed from the database or
from a FeedbackStore.
"""

from typing import Dict, List, Iterable, Optional

from config import SCALE_1_10
from utils import strip_deleted_marker, normalize_email
from portal.services.ratings import (
    parameter_average, normalize_average, faculty_overall,
    rating_band, rating_display, form_average,
)


def _question_map(responses: List[Dict], form_questions: List[Dict]) -> Dict[str, Dict]:
    """
    parameter id -> text/type/position

    Text and type embedded in the response items win since they reflect what
    the student actually answered; the form's question snapshot comes next,
    then numbered placeholders.
    """
    questions = {}
    position = 1
    for response in responses:
        for item in response.get('items') or []:
            if item.get('question_text') and item.get('question_type') and item['parameter_id'] not in questions:
                questions[item['parameter_id']] = {
                    'text': item['question_text'],
                    'type': item['question_type'],
                    'position': position,
                }
                position += 1

    if not questions and form_questions:
        for idx, q in enumerate(form_questions):
            questions[q['id']] = {'text': q['text'], 'type': q.get('question_type'), 'position': idx + 1}

    if not questions and responses:
        for idx, item in enumerate(responses[0].get('items') or []):
            questions[item['parameter_id']] = {
                'text': f"Question {idx + 1}",
                'type': item.get('question_type') or SCALE_1_10,
                'position': idx + 1,
            }

    return questions


def _comments(responses: Iterable[Dict]) -> List[Dict]:
    comments = []
    for response in responses:
        text = strip_deleted_marker(response.get('comment'))
        if text:
            comments.append({'text': text, 'submitted_at': response.get('submitted_at')})
    return comments


def form_report(form: Dict, responses: List[Dict], form_questions: List[Dict]) -> Dict:
    """Statistics for one form: overall average, per-question averages and comments."""
    responses = [r for r in responses if r['form_id'] == form['id']]

    if not responses:
        return {
            'form': form,
            'response_count': 0,
            'average': 0.0,
            'band': rating_band(0),
            'parameters': [
                {
                    'id': q['id'],
                    'index': idx + 1,
                    'text': q['text'],
                    'question_type': q.get('question_type') or SCALE_1_10,
                    'average': 0.0,
                    'normalized': 0.0,
                    'count': 0,
                    'display': '–',
                    'band': rating_band(0),
                }
                for idx, q in enumerate(form_questions)
            ],
            'comments': [],
        }

    questions = _question_map(responses, form_questions)
    parameters = []
    for parameter_id, question in sorted(questions.items(), key=lambda kv: kv[1]['position']):
        count = sum(
            1 for r in responses for item in r.get('items') or [] if item['parameter_id'] == parameter_id
        )
        average = parameter_average(responses, parameter_id)
        normalized = normalize_average(average, question['type'])
        parameters.append({
            'id': parameter_id,
            'index': question['position'],
            'text': question['text'],
            'question_type': question['type'] or SCALE_1_10,
            'average': average,
            'normalized': normalized,
            'count': count,
            'display': rating_display(average, question['type']) if count else '–',
            'band': rating_band(normalized),
        })

    average = form_average(responses, {pid: q['type'] for pid, q in questions.items()})
    return {
        'form': form,
        'response_count': len(responses),
        'average': average,
        'band': rating_band(average),
        'parameters': parameters,
        'comments': _comments(responses),
    }


def question_types(form_questions: Optional[List[Dict]]) -> Dict[str, str]:
    """parameter id -> question type of a form's question list"""
    return {q['id']: q.get('question_type') for q in form_questions or []}


def form_stats(form: Dict, responses: Iterable[Dict], form_questions: Optional[List[Dict]] = None) -> Dict:
    form_responses = [r for r in responses if r['form_id'] == form['id']]
    average = form_average(form_responses, question_types(form_questions))
    return {
        'form': form,
        'response_count': len(form_responses),
        'average': average,
        'band': rating_band(average),
    }


def faculty_report(faculty_email: str, forms: Iterable[Dict], responses: List[Dict],
                   form_questions: Optional[Dict[str, List[Dict]]] = None) -> Dict:
    """
    A faculty's forms with their averages and the response-weighted overall rating.

    form_questions: optional {form_id: questions} used to type legacy items
    """
    form_questions = form_questions or {}
    email = normalize_email(faculty_email)
    faculty_forms = [f for f in forms if normalize_email(f.get('faculty_email')) == email]
    stats = [form_stats(form, responses, form_questions.get(form['id'])) for form in faculty_forms]
    overall = faculty_overall(stats)

    return {
        'faculty_email': email,
        'faculty_name': faculty_forms[0]['faculty_name'] if faculty_forms else 'Faculty',
        'form_count': len(faculty_forms),
        'response_count': sum(s['response_count'] for s in stats),
        'average': overall,
        'band': rating_band(overall),
        'forms': stats,
    }


def faculty_summary(forms: List[Dict], responses: List[Dict],
                    form_questions: Optional[Dict[str, List[Dict]]] = None) -> List[Dict]:
    """One row per faculty for the admin report list."""
    emails = []
    for form in forms:
        email = normalize_email(form.get('faculty_email'))
        if email not in emails:
            emails.append(email)

    rows = []
    for email in emails:
        report = faculty_report(email, forms, responses, form_questions)
        report.pop('forms')
        rows.append(report)
    rows.sort(key=lambda r: r['faculty_name'].lower())
    return rows

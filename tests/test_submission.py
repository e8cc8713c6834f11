import logging

import pytest

from portal.errors import (InvalidRequest, NotAuthorized, StudentNotFound, FormNotFound,
                           DuplicateSubmission)
from portal.models.draft import DraftFeedback
from portal.models.feedback_form import FeedbackForm
from portal.models.response import FeedbackResponse
from portal.models.student import Student
from portal.models.store import FeedbackStore
from portal.services.ratings import response_average
from portal.services.reports import form_report
from portal.services.seed import seed_from_store
from portal.services.submission import submit_response, submit_responses


@pytest.fixture
def setup(db):
    student = Student.add('Asha Patil', 'asha@college.edu', 5, 'IT', 'A', 'A1')
    theory = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    lab = FeedbackForm.create('DBMS Lab', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A', 'A2')
    return student, theory, lab


def test_submit_embeds_question_snapshot(setup) -> None:
    student, theory, _ = setup
    response_id = submit_response(theory['id'], student['id'], {'theory_1': 3, 'theory_7': 8}, '  Good  ')

    assert response_id.startswith('resp_')
    response = FeedbackResponse.get_all(student_id=student['id'])[0]
    assert response['comment'] == 'Good'
    assert [(i['parameter_id'], i['question_type']) for i in response['items']] == [
        ('theory_1', 'scale_3'), ('theory_7', 'scale_1_10'),
    ]
    assert response['items'][0]['question_text'].startswith('Interaction with students')
    assert response_average(response) == 9


def test_ratings_are_clamped(setup) -> None:
    student, theory, _ = setup
    submit_response(theory['id'], student['id'], {'theory_7': 14, 'theory_1': -2, 'theory_2': '2.6'})

    ratings = {i['parameter_id']: i['rating'] for i in FeedbackResponse.get_all()[0]['items']}
    assert ratings == {'theory_7': 10, 'theory_1': 1, 'theory_2': 3}


def test_yes_no_answers_stay_within_zero_and_one(setup) -> None:
    student, _, _ = setup
    lab = FeedbackForm.create('OS Lab', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A', 'A1')
    submit_response(lab['id'], student['id'], {'lab_1': 5, 'lab_2': -1, 'lab_3': 0})

    ratings = {i['parameter_id']: i['rating'] for i in FeedbackResponse.get_all()[0]['items']}
    assert ratings == {'lab_1': 1, 'lab_2': 0, 'lab_3': 1}

    report = form_report(lab, FeedbackResponse.get_all(), FeedbackForm.questions(lab['id']))
    assert [p['display'] for p in report['parameters']] == ['100% Yes', '0% Yes', '1.0/10']
    assert all(p['normalized'] <= 10 for p in report['parameters'])


@pytest.mark.parametrize('value', ['great', None, float('nan'), float('inf')])
def test_unusable_rating_values_are_rejected(setup, value) -> None:
    student, theory, _ = setup
    with pytest.raises(InvalidRequest):
        submit_response(theory['id'], student['id'], {'theory_7': value})


def test_non_numeric_rating_is_rejected(setup) -> None:
    student, theory, _ = setup
    with pytest.raises(InvalidRequest):
        submit_response(theory['id'], student['id'], {'theory_7': 'great'})
    assert FeedbackResponse.count() == 0


def test_second_submission_conflicts(setup) -> None:
    student, theory, _ = setup
    submit_response(theory['id'], student['id'], {'theory_7': 8})
    with pytest.raises(DuplicateSubmission):
        submit_response(theory['id'], student['id'], {'theory_7': 2})
    assert FeedbackResponse.count() == 1


def test_ineligible_student_is_forbidden(setup) -> None:
    student, _, lab = setup
    with pytest.raises(NotAuthorized):
        submit_response(lab['id'], student['id'], {'lab_1': 1})


def test_closed_form_is_forbidden(setup) -> None:
    student, theory, _ = setup
    FeedbackForm.set_status(theory['id'], 'closed')
    with pytest.raises(NotAuthorized):
        submit_response(theory['id'], student['id'], {'theory_7': 8})


def test_unknown_student_or_form(setup) -> None:
    student, theory, _ = setup
    with pytest.raises(StudentNotFound):
        submit_response(theory['id'], 'nobody', {'theory_7': 8})
    with pytest.raises(FormNotFound):
        submit_response('missing', student['id'], {'theory_7': 8})


@pytest.mark.parametrize('ratings', [None, {}, [7, 8]])
def test_missing_ratings(setup, ratings) -> None:
    student, theory, _ = setup
    with pytest.raises(InvalidRequest):
        submit_response(theory['id'], student['id'], ratings)


def test_unknown_parameter_is_stored_without_type(setup) -> None:
    student, theory, _ = setup
    submit_response(theory['id'], student['id'], {'retired_question': 6})
    item = FeedbackResponse.get_all()[0]['items'][0]
    assert item['question_type'] is None
    assert item['rating'] == 6


def test_rejected_submissions_are_not_logged_as_errors(setup, caplog) -> None:
    student, theory, lab = setup
    submit_response(theory['id'], student['id'], {'theory_7': 8})

    with caplog.at_level(logging.INFO):
        with pytest.raises(DuplicateSubmission):
            submit_response(theory['id'], student['id'], {'theory_7': 2})
        with pytest.raises(NotAuthorized):
            submit_response(lab['id'], student['id'], {'lab_1': 1})
        with pytest.raises(StudentNotFound):
            submit_response(theory['id'], 'nobody', {'theory_7': 8})

    assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []


def test_seed_from_store(db) -> None:
    store = FeedbackStore.sample()
    store.set_form_status('f3', 'closed')

    assert seed_from_store(store) == (4, 3, 3)
    assert FeedbackForm.get('f3')['status'] == 'closed'
    assert FeedbackResponse.count() == 3
    assert Student.get('s4')['honours_course'] == 'CYBER'


@pytest.fixture
def two_forms(setup):
    student, theory, _ = setup
    lab = FeedbackForm.create('DBMS Lab', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A', 'A1')
    return student, theory, lab


def test_submit_all_forms_at_once(two_forms) -> None:
    student, theory, lab = two_forms
    DraftFeedback.save(student['id'], {'currentFormIndex': 1, 'allRatings': {}, 'allComments': {}})

    created = submit_responses(student['id'], [
        {'formId': theory['id'], 'ratings': {'theory_7': 9}, 'comment': 'Good pace'},
        {'formId': lab['id'], 'ratings': {'lab_1': 1, 'lab_3': 7}},
    ])

    assert len(created) == 2
    assert sorted(r['form_id'] for r in FeedbackResponse.get_all(student_id=student['id'])) == \
        sorted([theory['id'], lab['id']])
    assert DraftFeedback.get(student['id']) is None


def test_submit_all_skips_forms_already_answered(two_forms) -> None:
    student, theory, lab = two_forms
    submit_response(theory['id'], student['id'], {'theory_7': 4})

    created = submit_responses(student['id'], [
        {'formId': theory['id'], 'ratings': {'theory_7': 9}},
        {'formId': lab['id'], 'ratings': {'lab_1': 0}},
    ])

    assert len(created) == 1
    theory_response = FeedbackResponse.get_all(form_id=theory['id'])[0]
    assert theory_response['items'][0]['rating'] == 4


def test_submit_all_saves_nothing_when_one_form_is_not_allowed(setup) -> None:
    student, theory, other_batch_lab = setup
    with pytest.raises(NotAuthorized):
        submit_responses(student['id'], [
            {'formId': theory['id'], 'ratings': {'theory_7': 9}},
            {'formId': other_batch_lab['id'], 'ratings': {'lab_1': 1}},
        ])
    assert FeedbackResponse.count() == 0

    with pytest.raises(FormNotFound):
        submit_responses(student['id'], [
            {'formId': theory['id'], 'ratings': {'theory_7': 9}},
            {'formId': 'missing', 'ratings': {'theory_7': 9}},
        ])
    assert FeedbackResponse.count() == 0


@pytest.mark.parametrize('submissions', [None, [], [{'ratings': {'theory_7': 9}}], [{'formId': 'f1', 'ratings': {}}]])
def test_submit_all_requires_form_and_ratings(setup, submissions) -> None:
    student, _, _ = setup
    with pytest.raises(InvalidRequest):
        submit_responses(student['id'], submissions)


def test_submit_all_for_unknown_student(setup) -> None:
    _, theory, _ = setup
    with pytest.raises(StudentNotFound):
        submit_responses('nobody', [{'formId': theory['id'], 'ratings': {'theory_7': 9}}])

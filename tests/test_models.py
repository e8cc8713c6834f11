import pytest

from config import PLACEHOLDER_STUDENT_ID
from portal.errors import (DuplicateStudent, StudentNotFound, FormNotFound, InvalidRequest, ParameterNotFound,
                           DuplicateFaculty, EmailInUse, FacultyNotFound)
from portal.models.draft import DraftFeedback
from portal.models.faculty import Faculty
from portal.models.feedback_form import FeedbackForm
from portal.models.parameter import FeedbackParameter
from portal.models.response import FeedbackResponse
from portal.models.student import Student
from portal.models.timetable import Timetable, clean_entry
from portal.services.submission import submit_response
from portal.services.timetable_service import generate_forms, generate_forms_from_timetable


def add_asha(**overrides):
    fields = dict(name='Asha Patil', email='Asha@College.edu', semester=5, course='it', division='a', batch='a1')
    fields.update(overrides)
    return Student.add(**fields)


def test_add_student_normalizes_fields(db) -> None:
    student = add_asha(honours_course=' cyber ', honours_batch='')

    stored = Student.get(student['id'])
    assert stored['email'] == 'asha@college.edu'
    assert (stored['course'], stored['division'], stored['batch']) == ('IT', 'A', 'A1')
    assert stored['honours_course'] == 'CYBER'
    assert stored['honours_batch'] is None
    assert Student.get_by_email('ASHA@college.edu')['id'] == student['id']


def test_duplicate_email_is_rejected(db) -> None:
    add_asha()
    with pytest.raises(DuplicateStudent):
        add_asha(name='Someone Else')
    assert Student.count() == 1


def test_bulk_add_reports_duplicates(db) -> None:
    records = [
        {'name': 'Asha', 'email': 'asha@college.edu', 'semester': 5, 'course': 'IT', 'division': 'A'},
        {'name': 'Asha again', 'email': 'asha@college.edu', 'semester': 5, 'course': 'IT', 'division': 'A'},
        {'name': 'Rohan', 'email': 'rohan@college.edu', 'semester': 5, 'course': 'IT', 'division': 'B'},
    ]
    added, duplicate_count, duplicates = Student.bulk_add(records)
    assert (added, duplicate_count, duplicates) == (2, 1, ['asha@college.edu'])


def test_get_all_matches_regular_or_honours_course(db) -> None:
    add_asha()
    Student.add('Kabir', 'kabir@college.edu', 5, 'AIDS', 'A', honours_course='CYBER')
    Student.add('Neha', 'neha@college.edu', 3, 'IT', 'A')

    assert [s['name'] for s in Student.get_all(semester=5, course='it')] == ['Asha Patil']
    assert [s['name'] for s in Student.get_all(semester=5, course='CYBER')] == ['Kabir']
    assert len(Student.get_all()) == 3


def test_deleting_student_parks_and_relinks_responses(db) -> None:
    student = add_asha()
    form = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    submit_response(form['id'], student['id'], {'theory_7': 9}, 'Good pace')

    assert Student.delete(student['id']) == 1
    assert Student.get(student['id']) is None
    assert Student.count() == 0

    parked = FeedbackResponse.get_all(form_id=form['id'])[0]
    assert parked['student_id'] == PLACEHOLDER_STUDENT_ID
    assert parked['comment'] == 'Good pace\n__original_student_email:asha@college.edu'
    assert parked['items'][0]['rating'] == 9

    again = add_asha()
    restored = FeedbackResponse.get_all(form_id=form['id'])[0]
    assert restored['student_id'] == again['id']
    assert restored['comment'] == 'Good pace'


def test_relink_ignores_other_emails_with_same_prefix(db) -> None:
    student = Student.add('Ash', 'ash@college.edu.in', 5, 'IT', 'A')
    form = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    submit_response(form['id'], student['id'], {'theory_7': 6})
    Student.delete(student['id'])

    Student.add('Ash', 'ash@college.edu', 5, 'IT', 'A')
    assert FeedbackResponse.get_all(form_id=form['id'])[0]['student_id'] == PLACEHOLDER_STUDENT_ID


def test_two_deleted_students_can_park_responses_for_one_form(db) -> None:
    form = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    for email in ('a@college.edu', 'b@college.edu'):
        student = Student.add('Student', email, 5, 'IT', 'A')
        submit_response(form['id'], student['id'], {'theory_7': 8})
        Student.delete(student['id'])

    responses = FeedbackResponse.get_all(form_id=form['id'])
    assert len(responses) == 2
    assert {r['student_id'] for r in responses} == {PLACEHOLDER_STUDENT_ID}


def test_delete_unknown_student(db) -> None:
    with pytest.raises(StudentNotFound):
        Student.delete('missing')


def test_parameter_crud_and_reset(db) -> None:
    assert [p['id'] for p in FeedbackParameter.get_all('lab')] == ['lab_1', 'lab_2', 'lab_3']

    added = FeedbackParameter.add('Punctuality', 'lab', 'yes_no')
    assert added['position'] == 4

    updated = FeedbackParameter.update(added['id'], text='Punctuality in sessions', question_type='scale_3')
    assert FeedbackParameter.get(added['id'])['question_type'] == 'scale_3'
    assert updated['text'] == 'Punctuality in sessions'

    FeedbackParameter.delete(added['id'])
    with pytest.raises(ParameterNotFound):
        FeedbackParameter.delete(added['id'])

    FeedbackParameter.add('Extra', 'theory')
    assert FeedbackParameter.reset_defaults() == 10
    assert len(FeedbackParameter.get_all()) == 10
    assert FeedbackParameter.seed_if_empty() == 0


def test_parameter_validation(db) -> None:
    with pytest.raises(InvalidRequest):
        FeedbackParameter.add('  ')
    with pytest.raises(InvalidRequest):
        FeedbackParameter.add('Question', 'seminar')
    with pytest.raises(InvalidRequest):
        FeedbackParameter.update('theory_1', question_type='stars_5')
    with pytest.raises(ParameterNotFound):
        FeedbackParameter.update('missing', text='x')


def test_form_snapshots_question_bank(db) -> None:
    theory = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    lab = FeedbackForm.create('DBMS Lab', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A', 'A1')

    FeedbackParameter.update('theory_1', text='Changed later')

    questions = FeedbackForm.questions(theory['id'])
    assert len(questions) == 7
    assert questions[0]['id'] == 'theory_1'
    assert questions[0]['text'].startswith('Interaction with students')
    assert [q['question_type'] for q in FeedbackForm.questions(lab['id'])] == ['yes_no', 'yes_no', 'scale_1_10']


def test_form_status_and_delete(db) -> None:
    student = add_asha()
    form = FeedbackForm.create('DBMS', 'Dr. Kulkarni', 'kulkarni@college.edu', 5, 'IT', 'A')
    submit_response(form['id'], student['id'], {'theory_7': 9})

    FeedbackForm.set_status(form['id'], 'closed')
    assert FeedbackForm.get(form['id'])['status'] == 'closed'
    assert FeedbackForm.get_all(status='active') == []
    with pytest.raises(InvalidRequest):
        FeedbackForm.set_status(form['id'], 'archived')

    assert FeedbackForm.delete(form['id']) == 1
    assert FeedbackResponse.count() == 0
    with pytest.raises(FormNotFound):
        FeedbackForm.questions(form['id'])


def test_clean_entry() -> None:
    entry = clean_entry({'subject_name': ' DBMS ', 'faculty_email': 'K@College.edu', 'semester': 'Semester 5',
                         'course': 'it', 'division': None, 'batch': ' '})
    assert entry['subject_name'] == 'DBMS'
    assert entry['faculty_email'] == 'k@college.edu'
    assert entry['semester'] == 5
    assert entry['division'] == ''
    assert entry['batch'] is None
    assert entry['academic_year'] == '2025-26'

    assert clean_entry({'subject_name': 'DBMS', 'faculty_email': 'k@college.edu', 'semester': 9, 'course': 'IT'}) is None
    assert clean_entry({'faculty_email': 'k@college.edu', 'semester': 5, 'course': 'IT'}) is None


def test_timetable_bulk_add_and_clear(db) -> None:
    entries = [
        {'subject_name': 'DBMS', 'faculty_email': 'k@college.edu', 'semester': 5, 'course': 'IT', 'division': 'A'},
        {'subject_name': 'OS', 'faculty_email': '', 'semester': 5, 'course': 'IT'},
    ]
    assert Timetable.bulk_add(entries) == (1, 1)
    assert [e['subject_name'] for e in Timetable.get_all('2025-26')] == ['DBMS']
    assert Timetable.clear() == 1


def test_generate_forms_skips_invalid_and_duplicate_rows(db) -> None:
    entries = [
        {'subject_name': 'DBMS', 'faculty_name': 'Dr. Kulkarni', 'faculty_email': 'kulkarni@college.edu',
         'semester': 5, 'course': 'IT', 'division': 'A'},
        {'subject_name': 'dbms', 'faculty_name': 'Dr. Kulkarni', 'faculty_email': 'KULKARNI@college.edu',
         'semester': 5, 'course': 'it', 'division': 'a'},
        {'subject_name': 'DBMS Lab', 'faculty_email': 'kulkarni@college.edu',
         'semester': 5, 'course': 'IT', 'division': 'A', 'batch': 'A1'},
        {'subject_name': 'Cyber Security', 'faculty_name': 'Prof. Iyer', 'faculty_email': 'iyer@college.edu',
         'semester': 5, 'course': 'CYBER'},
        {'subject_name': 'OS', 'faculty_email': 'x@college.edu', 'semester': 0, 'course': 'IT'},
    ]

    created, skipped = generate_forms(entries)

    assert [f['subject_name'] for f in created] == ['DBMS', 'DBMS Lab', 'Cyber Security']
    assert skipped == 2
    assert created[1]['faculty_name'] == 'kulkarni@college.edu'
    assert created[2]['division'] == ''
    assert all(f['status'] == 'active' for f in created)

    created_again, skipped_again = generate_forms(entries)
    assert created_again == []
    assert skipped_again == 5


def test_generate_forms_from_stored_timetable(db) -> None:
    Timetable.bulk_add([
        {'subject_name': 'DBMS', 'faculty_email': 'k@college.edu', 'semester': 5, 'course': 'IT',
         'division': 'A', 'academic_year': '2024-25'},
        {'subject_name': 'OS', 'faculty_email': 'k@college.edu', 'semester': 5, 'course': 'IT', 'division': 'A'},
    ])
    created, skipped = generate_forms_from_timetable('2025-26')
    assert [f['subject_name'] for f in created] == ['OS']
    assert skipped == 0


def test_add_faculty(db) -> None:
    faculty = Faculty.add(' Dr. Kulkarni ', 'Kulkarni@College.edu', 'FK01')

    assert faculty['id'].startswith('fac_')
    assert Faculty.get(faculty['id']) == {'id': faculty['id'], 'name': 'Dr. Kulkarni',
                                          'email': 'kulkarni@college.edu', 'faculty_code': 'FK01'}
    with pytest.raises(DuplicateFaculty):
        Faculty.add('Someone Else', 'kulkarni@college.edu', 'FK02')
    with pytest.raises(InvalidRequest):
        Faculty.add('Dr. Rao', 'rao@college.edu', '')


def test_faculty_and_student_emails_do_not_overlap(db) -> None:
    add_asha()
    with pytest.raises(EmailInUse) as excinfo:
        Faculty.add('Asha Patil', 'asha@college.edu', 'FA01')
    assert excinfo.value.role == 'student'
    assert excinfo.value.status_code == 409

    Faculty.add('Dr. Kulkarni', 'kulkarni@college.edu', 'FK01')
    with pytest.raises(EmailInUse) as excinfo:
        add_asha(email='kulkarni@college.edu')
    assert excinfo.value.role == 'faculty'
    assert Student.count() == 1


def test_faculty_bulk_add_skips_known_emails(db) -> None:
    add_asha()
    Faculty.add('Dr. Kulkarni', 'kulkarni@college.edu', 'FK01')
    records = [
        {'name': 'Prof. Iyer', 'email': 'iyer@college.edu', 'code': 'PI02'},
        {'name': 'Prof. Iyer', 'email': 'IYER@college.edu'},
        {'name': 'Dr. K', 'email': 'kulkarni@college.edu'},
        {'name': 'Asha', 'email': 'asha@college.edu'},
        {'name': '', 'email': 'blank@college.edu'},
    ]

    created, skipped, errors = Faculty.bulk_add(records)

    assert (created, skipped) == (1, 3)
    assert errors == ['Row 5: Missing required fields']
    assert [(f['name'], f['faculty_code']) for f in Faculty.get_all()] == [('Dr. Kulkarni', 'FK01'),
                                                                           ('Prof. Iyer', 'PI02')]


def test_delete_faculty(db) -> None:
    first = Faculty.add('Dr. Kulkarni', 'kulkarni@college.edu', 'FK01')
    second = Faculty.add('Prof. Iyer', 'iyer@college.edu', 'PI02')

    Faculty.delete(first['id'])
    assert Faculty.get(first['id']) is None
    with pytest.raises(FacultyNotFound):
        Faculty.delete(first['id'])

    assert Faculty.bulk_delete([second['id'], 'missing']) == 1
    assert Faculty.bulk_delete([]) == 0
    assert Faculty.get_all() == []


def test_generate_forms_takes_name_from_faculty_directory(db) -> None:
    Faculty.add('Prof. Iyer', 'iyer@college.edu', 'PI02')
    created, _ = generate_forms([
        {'subject_name': 'Cyber Security', 'faculty_email': 'IYER@college.edu', 'semester': 5, 'course': 'CYBER'},
        {'subject_name': 'OS', 'faculty_email': 'rao@college.edu', 'semester': 5, 'course': 'IT', 'division': 'A'},
    ])
    assert [f['faculty_name'] for f in created] == ['Prof. Iyer', 'rao@college.edu']


def test_draft_is_saved_replaced_and_cleared(db) -> None:
    student = add_asha()
    assert DraftFeedback.get(student['id']) is None

    DraftFeedback.save(student['id'], {'currentFormIndex': 0, 'allRatings': {'f1': {'theory_7': 6}}})
    DraftFeedback.save(student['id'], {'currentFormIndex': 1, 'allRatings': {'f1': {'theory_7': 8}}})

    draft = DraftFeedback.get(student['id'])
    assert draft['form_data'] == {'currentFormIndex': 1, 'allRatings': {'f1': {'theory_7': 8}}}
    assert draft['updated_at']

    Student.delete(student['id'])
    assert DraftFeedback.get(student['id']) is None
    assert DraftFeedback.delete(student['id']) == 0

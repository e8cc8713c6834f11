import pytest

from portal.models import database
from portal.models.database import init_db
from portal.models.parameter import FeedbackParameter


@pytest.fixture
def db(tmp_path, monkeypatch):
    """A fresh sqlite database with the default question bank."""
    monkeypatch.setattr(database, 'DATABASE_PATH', str(tmp_path / 'feedback.db'))
    monkeypatch.chdir(tmp_path)
    init_db()
    FeedbackParameter.reset_defaults()
    return tmp_path


@pytest.fixture
def client(db):
    from app import create_app
    app = create_app()
    app.config['TESTING'] = True
    return app.test_client()


def student(**overrides):
    record = {
        'id': 's1',
        'name': 'Asha Patil',
        'email': 'asha@college.edu',
        'semester': 5,
        'course': 'IT',
        'division': 'A',
        'batch': 'A1',
        'honours_course': None,
        'honours_batch': None,
    }
    record.update(overrides)
    return record


def form(**overrides):
    record = {
        'id': 'f1',
        'subject_name': 'Operating Systems',
        'faculty_name': 'Dr. Kulkarni',
        'faculty_email': 'kulkarni@college.edu',
        'semester': 5,
        'course': 'IT',
        'division': 'A',
        'batch': None,
        'academic_year': '2025-26',
        'status': 'active',
    }
    record.update(overrides)
    return record

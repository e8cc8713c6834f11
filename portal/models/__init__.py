from .database import init_db, get_db, get_db_path
from .student import Student
from .parameter import FeedbackParameter
from .feedback_form import FeedbackForm
from .timetable import Timetable
from .response import FeedbackResponse
from .faculty import Faculty
from .draft import DraftFeedback

__all__ = ['init_db', 'get_db', 'get_db_path', 'Student', 'FeedbackParameter', 'FeedbackForm',
           'Timetable', 'FeedbackResponse', 'Faculty', 'DraftFeedback']

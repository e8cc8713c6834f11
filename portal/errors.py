"""
Errors raised by the data-access and submission layers.

Each carries the HTTP status the blueprints answer with.
"""


class PortalError(Exception):
    status_code = 500
    message = "Something went wrong"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message}


class InvalidRequest(PortalError):
    status_code = 400
    message = "Missing required fields"


class NotAuthorized(PortalError):
    status_code = 403
    message = "You are not authorized to submit this form. This form is for a different class/division."


class StudentNotFound(PortalError):
    status_code = 404
    message = "Student not found"


class FormNotFound(PortalError):
    status_code = 404
    message = "Form not found"


class ParameterNotFound(PortalError):
    status_code = 404
    message = "Parameter not found"


class DuplicateSubmission(PortalError):
    status_code = 409
    message = "You have already submitted feedback for this form"


class DuplicateStudent(PortalError):
    status_code = 409
    message = "A student with this email already exists"


class FacultyNotFound(PortalError):
    status_code = 404
    message = "Faculty not found"


class DuplicateFaculty(PortalError):
    status_code = 409
    message = "A faculty with this email already exists"


class EmailInUse(PortalError):
    status_code = 409

    def __init__(self, role):
        super().__init__(f"This email is already registered as {role}. "
                         f"Please remove them from {role} first.")
        self.role = role

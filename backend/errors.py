"""
Error types shared by the routes and the AI pipeline.

Every error carries the HTTP status and the message shown to the user, so
route handlers can simply let them propagate to the Flask error handler.
"""


class StudyBuddyError(Exception):
    status_code = 500
    code = 'error'
    default_message = 'Something went wrong. Please try again.'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(StudyBuddyError):
    status_code = 400
    code = 'validation'
    default_message = 'Invalid request.'


class AuthenticationError(StudyBuddyError):
    status_code = 401
    code = 'auth'
    default_message = 'Invalid or expired token'


class NotFoundError(StudyBuddyError):
    status_code = 404
    code = 'not_found'
    default_message = 'Not found.'


class ConflictError(StudyBuddyError):
    status_code = 409
    code = 'conflict'
    default_message = 'Already exists.'


class TransportError(StudyBuddyError):
    """Upstream AI or extraction service failed or answered non-2xx."""
    status_code = 502
    code = 'transport'
    default_message = 'The AI service is unavailable right now. Please try again.'


class QuizGenerationFailed(StudyBuddyError):
    status_code = 502
    code = 'quiz_generation_failed'
    default_message = 'Could not generate quiz questions. Please try again.'


class ServiceNotConfigured(StudyBuddyError):
    status_code = 503
    code = 'not_configured'
    default_message = 'This feature is not configured on the server.'

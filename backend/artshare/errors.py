"""Error taxonomy for the API and the handlers that turn it into JSON.

Every handler-level failure leaves the app as ``{"success": false, "error": ...}``
with one of these status codes:

- 400 :class:`ValidationError`, optionally with a per-field ``fields`` map
- 401 :class:`Unauthenticated`
- 404 :class:`NotFound`, also used when the caller does not own the record
- 409 :class:`Conflict`
- 500 anything unexpected; logged server-side, no detail sent to the client
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    message = 'Internal Server Error'

    def __init__(self, message=None, fields=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.fields = fields or {}

    def to_dict(self):
        body = {'success': False, 'error': self.message}
        if self.fields:
            body['fields'] = self.fields
        return body


class ValidationError(ApiError):
    status_code = 400
    message = 'Invalid request'


class Unauthenticated(ApiError):
    status_code = 401
    message = 'Authentication required'


class NotFound(ApiError):
    status_code = 404
    message = 'Not found'


class Conflict(ApiError):
    status_code = 409
    message = 'Conflict'


def register_error_handlers(app):
    from . import db

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'success': False, 'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.exception('Unhandled error while serving request')
        return jsonify({'success': False, 'error': ApiError.message}), 500

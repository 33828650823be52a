"""
Request authentication and ownership checks.

:func:`resolve_identity` turns the session cookie of a request into a
:class:`.User`, or ``None`` for anonymous callers. Protected routes are wrapped
with :func:`login_required`, which rejects anonymous callers before the route
touches any data and exposes the user as ``flask.g.current_user``:

.. code-block:: python

   @api.route('/images/<int:image_id>', methods=['GET'])
   @login_required
   def get_image(image_id):
       image = require_owner(db.session.get(Image, image_id), g.current_user,
                             'Image not found')
       ...

Ownership failures are reported exactly like missing records (see
:func:`require_owner`), so an id belonging to another user cannot be told
apart from an id that does not exist.
"""

from functools import wraps
from typing import Any, Callable, Optional

from flask import current_app, g, request as flask_request
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .errors import NotFound, Unauthenticated
from .models import User
from .security import verify_token


def resolve_identity(request=None) -> Optional[User]:
    """Return the user behind the request's session cookie, or ``None``.

    A missing cookie, a token that fails verification and a token whose user
    no longer exists all resolve to ``None``.
    """
    request = request if request is not None else flask_request
    token = request.cookies.get(current_app.config['JWT_ACCESS_COOKIE_NAME'])
    if not token:
        return None

    identity = verify_token(token)
    if identity is None:
        return None

    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        current_app.logger.warning('Session token carries a non-numeric identity')
        return None

    try:
        user = db.session.get(User, user_id)
    except SQLAlchemyError:
        current_app.logger.exception('Error finding user for session')
        db.session.rollback()
        return None
    if user is None:
        current_app.logger.debug(f'Session refers to missing user {user_id}')
    return user


def login_required(func: Callable) -> Callable:
    """Reject the request with 401 unless it carries a valid session."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        user = resolve_identity()
        if user is None:
            current_app.logger.warning(f'Unauthenticated request to {flask_request.path}')
            raise Unauthenticated()
        g.current_user = user
        return func(*args, **kwargs)
    return wrapper


def require_owner(record, user, message='Not found'):
    """Return ``record`` if ``user`` owns it, otherwise raise :class:`NotFound`.

    Owner mismatch and absence produce the same response.
    """
    if record is None or user is None or record.user_id != user.id:
        if record is not None:
            current_app.logger.warning(
                f'User {getattr(user, "id", None)} denied access to {record!r}'
            )
        raise NotFound(message)
    return record

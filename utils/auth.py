from functools import wraps
from flask import session, jsonify

OPERATOR_ROLES = ('ga', 'jga')


def current_actor():
    """Returns the uid of the logged in user, or None."""
    return session.get('uid')


def is_operator():
    return session.get('role') in OPERATOR_ROLES


def roles_required(*roles):
    """
    A decorator to ensure the session belongs to one of the given roles.
    API callers get a JSON error instead of a redirect to the login page.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            role = session.get('role')
            if role is None:
                return jsonify({'success': False, 'error': 'Authentication required.'}), 401
            if role not in roles:
                return jsonify({'success': False, 'error': 'You do not have permission to perform this action.'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


operator_required = roles_required(*OPERATOR_ROLES)

from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from scoreline.errors import ValidationError


def admin_required(view):
    """Login plus ADMIN role."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'error': 'Admin access required'}), 403
        return view(*args, **kwargs)
    return wrapped


def json_body(required=True):
    """The request's JSON object; ``{}`` for a missing body when not required."""
    data = request.get_json(silent=True)
    if data is None and not required:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data


def standings_cache():
    return current_app.extensions['standings_cache']


def invalidate_standings(round_id=None):
    standings_cache().invalidate(round_id)


def parse_id_list(raw):
    """'1,2,3' -> [1, 2, 3]; None or missing -> None; '' -> []."""
    if raw is None:
        return None
    try:
        return [int(part) for part in raw.split(',') if part.strip()]
    except ValueError:
        raise ValidationError('user_ids must be a comma separated list of integers.')

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from scoreline import db
from scoreline.api import invalidate_standings, json_body
from scoreline.errors import StateConflictError, ValidationError
from scoreline.services import predictions as prediction_service
from scoreline.services.rounds import get_active_round

predictions = Blueprint('predictions', __name__)


def _target_round_id(data):
    round_id = data.get('round_id')
    if round_id is not None:
        if isinstance(round_id, bool) or not isinstance(round_id, int) or round_id <= 0:
            raise ValidationError('round_id must be a positive integer.')
        return round_id
    active = get_active_round(db.session)
    if active is None:
        raise StateConflictError('No active round found for submitting predictions.')
    return active.id


@predictions.route('/', methods=['POST'])
@login_required
def submit_predictions():
    """
    Submits or updates a batch of predictions; the active round unless round_id is given.
    """
    data = json_body()
    round_id = _target_round_id(data)
    result = prediction_service.submit_predictions(db.session, current_user.id, round_id, data.get('predictions'))
    invalidate_standings(round_id)
    message = 'Predictions submitted successfully.' if result['count'] else 'No prediction data needed updating.'
    return jsonify({'message': message, **result}), 200


@predictions.route('/random', methods=['POST'])
@login_required
def random_predictions():
    """
    Fills every fixture the user has not predicted yet with random goals.
    """
    data = json_body(required=False)
    round_id = _target_round_id(data)
    result = prediction_service.generate_random_predictions(
        db.session, current_user.id, round_id, max_goals=current_app.config.get('RANDOM_MAX_GOALS', 4)
    )
    invalidate_standings(round_id)
    return jsonify({'message': 'Random predictions generated successfully.', **result}), 200


@predictions.route('/points/<int:round_id>', methods=['GET'])
@login_required
def round_points(round_id):
    return jsonify(prediction_service.get_round_points(db.session, current_user.id, round_id)), 200

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from scoreline import db
from scoreline.services import stats as stats_service

users = Blueprint('users', __name__)


@users.route('/me/stats/predictions', methods=['GET'])
@login_required
def my_prediction_stats():
    """
    Accuracy, average points per round, best round and points history for the current user.
    """
    return jsonify(stats_service.get_user_prediction_stats(db.session, current_user.id)), 200

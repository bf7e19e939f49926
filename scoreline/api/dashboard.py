from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from scoreline import db
from scoreline.services import stats as stats_service

dashboard = Blueprint('dashboard', __name__)


@dashboard.route('/highlights', methods=['GET'])
@login_required
def highlights():
    return jsonify(stats_service.get_dashboard_highlights(db.session, current_user.id)), 200

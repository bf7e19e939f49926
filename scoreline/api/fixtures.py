from flask import Blueprint, jsonify

from scoreline import db
from scoreline.api import admin_required, invalidate_standings, json_body
from scoreline.services import fixtures as fixture_service

fixtures = Blueprint('fixtures', __name__)


@fixtures.route('/<int:fixture_id>/result', methods=['PUT'])
@admin_required
def enter_result(fixture_id):
    """
    Enters or corrects the final score of a fixture.
    """
    data = json_body()
    fixture = fixture_service.enter_result(db.session, fixture_id, data.get('home_score'), data.get('away_score'))
    invalidate_standings(fixture.round_id)
    return jsonify(fixture.to_dict()), 200


@fixtures.route('/<int:fixture_id>', methods=['DELETE'])
@admin_required
def delete_fixture(fixture_id):
    round_id = fixture_service.delete_fixture(db.session, fixture_id)
    invalidate_standings(round_id)
    return '', 204

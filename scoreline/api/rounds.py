from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from scoreline import db
from scoreline.api import admin_required, invalidate_standings, json_body
from scoreline.services import fixtures as fixture_service
from scoreline.services import predictions as prediction_service
from scoreline.services import rounds as round_service
from scoreline.services.scoring import score_round

rounds = Blueprint('rounds', __name__)


@rounds.route('/', methods=['GET'])
@login_required
def list_rounds():
    """
    Lists rounds, optionally filtered by ?status=.
    """
    found = round_service.list_rounds(db.session, status=request.args.get('status'))
    return jsonify([r.to_dict() for r in found]), 200


@rounds.route('/', methods=['POST'])
@admin_required
def create_round():
    data = json_body()
    rnd = round_service.create_round(
        db.session,
        name=data.get('name'),
        deadline=data.get('deadline'),
        created_by=current_user.id,
        joker_limit=data.get('joker_limit'),
    )
    return jsonify(rnd.to_dict()), 201


@rounds.route('/active', methods=['GET'])
@login_required
def get_active_round():
    """
    Returns the open round with this user's predictions merged in, or null.
    """
    return jsonify(prediction_service.get_active_round_view(db.session, current_user.id)), 200


@rounds.route('/<int:round_id>', methods=['GET'])
@login_required
def get_round(round_id):
    return jsonify(round_service.get_round_detail(db.session, round_id)), 200


@rounds.route('/<int:round_id>', methods=['PUT'])
@admin_required
def update_round(round_id):
    data = json_body()
    rnd = round_service.update_round(
        db.session, round_id,
        name=data.get('name'),
        deadline=data.get('deadline'),
        joker_limit=data.get('joker_limit'),
    )
    return jsonify(rnd.to_dict()), 200


@rounds.route('/<int:round_id>', methods=['DELETE'])
@admin_required
def delete_round(round_id):
    round_service.delete_round(db.session, round_id)
    invalidate_standings(round_id)
    return '', 204


@rounds.route('/<int:round_id>/status', methods=['PUT'])
@admin_required
def set_round_status(round_id):
    """
    Moves a round between SETUP, OPEN and CLOSED.
    """
    data = json_body()
    rnd = round_service.set_status(db.session, round_id, data.get('status'))
    invalidate_standings(round_id)
    current_app.logger.info(f"[round-status] round={round_id} status={rnd.status} by={current_user.id}")
    return jsonify(rnd.to_dict()), 200


@rounds.route('/<int:round_id>/score', methods=['POST'])
@admin_required
def score(round_id):
    """
    Scores every finished fixture of a CLOSED round and completes it.
    """
    summary = score_round(db.session, round_id)
    invalidate_standings(round_id)
    return jsonify(summary), 200


@rounds.route('/<int:round_id>/fixtures', methods=['POST'])
@admin_required
def add_fixture(round_id):
    data = json_body()
    fixture = fixture_service.add_fixture(
        db.session, round_id,
        home_team=data.get('home_team'),
        away_team=data.get('away_team'),
        match_time=data.get('match_time'),
        external_id=data.get('external_id'),
    )
    return jsonify(fixture.to_dict()), 201


@rounds.route('/<int:round_id>/fixtures/import', methods=['POST'])
@admin_required
def import_fixtures(round_id):
    """
    Accepts raw fixture records from an import collaborator.
    """
    data = json_body()
    count = fixture_service.import_fixtures(db.session, round_id, data.get('fixtures'))
    return jsonify({'message': f'Successfully imported {count} fixtures.', 'count': count}), 201


@rounds.route('/<int:round_id>/fixtures/random-results', methods=['POST'])
@admin_required
def random_results(round_id):
    count = fixture_service.generate_random_results(
        db.session, round_id, max_goals=current_app.config.get('RANDOM_MAX_GOALS', 4)
    )
    invalidate_standings(round_id)
    return jsonify({'message': f'Generated random results for {count} fixtures.', 'count': count}), 200


@rounds.route('/<int:round_id>/prediction-status', methods=['GET'])
@admin_required
def prediction_status(round_id):
    return jsonify(prediction_service.get_prediction_status(db.session, round_id)), 200

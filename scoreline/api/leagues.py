from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from scoreline import db
from scoreline.api import json_body
from scoreline.api.standings import cached_standings
from scoreline.services import leagues as league_service

leagues = Blueprint('leagues', __name__)


@leagues.route('/', methods=['POST'])
@login_required
def create_league():
    """
    Creates a private league with the current user as first member.
    """
    data = json_body()
    league = league_service.create_league(db.session, data.get('name'), current_user.id)
    return jsonify(league.to_dict()), 201


@leagues.route('/join', methods=['POST'])
@login_required
def join_league():
    data = json_body()
    league = league_service.join_league(db.session, data.get('invite_code'), current_user.id)
    return jsonify({'message': f'Successfully joined league {league.name}', 'league': league.to_dict()}), 200


@leagues.route('/mine', methods=['GET'])
@login_required
def my_leagues():
    return jsonify([league.to_dict() for league in league_service.list_user_leagues(db.session, current_user.id)]), 200


@leagues.route('/<int:league_id>/standings', methods=['GET'])
@login_required
def league_standings(league_id):
    """
    Overall standings restricted to the league's members; members only.
    """
    member_ids = league_service.require_member(db.session, league_id, current_user.id)
    return jsonify(cached_standings(user_ids=member_ids, with_baseline=True)), 200


@leagues.route('/<int:league_id>/membership', methods=['DELETE'])
@login_required
def leave_league(league_id):
    league = league_service.leave_league(db.session, league_id, current_user.id)
    return jsonify({'message': f'You have left league {league.name}'}), 200


@leagues.route('/<int:league_id>/members/<int:member_id>', methods=['DELETE'])
@login_required
def remove_member(league_id, member_id):
    """
    Removes another member from the league; creator only.
    """
    league = league_service.remove_member(db.session, league_id, member_id, current_user.id)
    return jsonify({'message': 'Member removed', 'league': league.to_dict()}), 200


@leagues.route('/<int:league_id>', methods=['DELETE'])
@login_required
def delete_league(league_id):
    league_service.delete_league(db.session, league_id, current_user.id)
    return '', 204

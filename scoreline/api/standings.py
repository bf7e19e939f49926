from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from scoreline import db
from scoreline.api import parse_id_list, standings_cache
from scoreline.errors import ValidationError
from scoreline.services import standings as standings_service
from scoreline.services.rounds import get_round

standings = Blueprint('standings', __name__)


def cached_standings(round_id=None, user_ids=None, with_baseline=False):
    """Standings through the app cache; overall tables may carry movement vs. the previous round."""
    def compute():
        previous = None
        if with_baseline and round_id is None:
            previous = standings_service.previous_overall_snapshot(db.session, user_ids=user_ids)
        return standings_service.compute_standings(
            db.session, round_id=round_id, user_ids=user_ids, previous=previous
        )

    if not current_app.config.get('STANDINGS_CACHE_ENABLED', True):
        return compute()
    cache = standings_cache()
    version = standings_service.standings_version(db.session)
    return cache.get_or_compute(cache.key(round_id, user_ids, variant=with_baseline, version=version), compute)


@standings.route('/', methods=['GET'])
@login_required
def get_standings():
    """
    Ranked standings: overall, or for ?round_id=; ?user_ids=1,2 narrows the players.
    ?baseline=previous adds movement against the table before the latest completed round.
    """
    raw_round = request.args.get('round_id')
    round_id = None
    if raw_round:
        try:
            round_id = int(raw_round)
        except ValueError:
            raise ValidationError('round_id must be an integer.')
        get_round(db.session, round_id)
    user_ids = parse_id_list(request.args.get('user_ids'))
    with_baseline = request.args.get('baseline') == 'previous'
    return jsonify(cached_standings(round_id, user_ids, with_baseline)), 200

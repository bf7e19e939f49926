"""Per-player statistics and dashboard highlights.

Both read only what standings read: predictions of COMPLETED rounds on
fixtures with a final score.
"""
import logging
from typing import List, Optional

from scoreline.models import Fixture, Prediction, Round, STATUS_COMPLETED
from scoreline.services.scoring import outcome
from scoreline.services.standings import accuracy_percent, compute_standings, latest_completed_round_id

logger = logging.getLogger(__name__)


def get_user_prediction_stats(session, user_id: int) -> dict:
    """Accuracy, average and best round, and the points history of one player."""
    rows = (
        session.query(
            Prediction.round_id,
            Round.name,
            Prediction.predicted_home_goals,
            Prediction.predicted_away_goals,
            Prediction.points_awarded,
            Fixture.home_score,
            Fixture.away_score,
        )
        .join(Fixture, Prediction.fixture_id == Fixture.id)
        .join(Round, Prediction.round_id == Round.id)
        .filter(
            Prediction.user_id == user_id,
            Round.status == STATUS_COMPLETED,
            Fixture.home_score.isnot(None),
            Fixture.away_score.isnot(None),
        )
        .order_by(Prediction.round_id.asc(), Prediction.submitted_at.asc())
        .all()
    )

    per_round = {}
    determinable = 0
    correct = 0
    for round_id, round_name, pred_home, pred_away, points, home_score, away_score in rows:
        entry = per_round.setdefault(round_id, {'round_id': round_id, 'round_name': round_name, 'points': 0})
        entry['points'] += points or 0
        predicted_outcome = outcome(pred_home, pred_away)
        if predicted_outcome is None:
            continue
        determinable += 1
        if predicted_outcome == outcome(home_score, away_score):
            correct += 1

    history = sorted(per_round.values(), key=lambda e: e['round_id'])
    best_round = None
    for entry in history:
        if best_round is None or entry['points'] > best_round['points']:
            best_round = entry
    total = sum(entry['points'] for entry in history)

    logger.debug("[user-stats] user=%s rounds=%s predictions=%s", user_id, len(history), len(rows))
    return {
        'overall_accuracy': accuracy_percent(correct, determinable),
        'average_points_per_round': round(total / len(history), 1) if history else 0.0,
        'best_round': dict(best_round) if best_round else None,
        'points_per_round_history': history,
    }


def _top_of(standings: List[dict], score_field: str) -> List[dict]:
    if not standings:
        return []
    top = standings[0]['points']
    return [
        {'user_id': e['user_id'], 'name': e['name'], 'avatar_url': e['avatar_url'], score_field: e['points']}
        for e in standings if e['points'] == top
    ]


def get_dashboard_highlights(session, user_id: Optional[int] = None) -> dict:
    """Top scorers of the latest completed round, the user's place in it, and the overall leaders."""
    overall = compute_standings(session)
    overall_leader = None
    if overall:
        overall_leader = {'leaders': _top_of(overall, 'total_points'), 'leading_score': overall[0]['points']}

    last_round_highlights = None
    user_last_round_stats = None
    last_round_id = latest_completed_round_id(session)
    if last_round_id is not None:
        round_table = compute_standings(session, round_id=last_round_id)
        if round_table:
            last_round_highlights = {
                'round_id': last_round_id,
                'round_name': session.get(Round, last_round_id).name,
                'top_scorers': _top_of(round_table, 'score'),
            }
            mine = next((e for e in round_table if e['user_id'] == user_id), None)
            if mine is not None:
                user_last_round_stats = {'round_id': last_round_id, 'score': mine['points'], 'rank': mine['rank']}

    return {
        'last_round_highlights': last_round_highlights,
        'user_last_round_stats': user_last_round_stats,
        'overall_leader': overall_leader,
    }

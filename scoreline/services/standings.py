"""Standings aggregation.

Reduces scored predictions into a ranked leaderboard. Only predictions of
COMPLETED rounds, on fixtures with a final score, by PLAYER users count.
"""
import logging
import unicodedata
from collections import OrderedDict
from collections.abc import Mapping
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from sqlalchemy import func

from scoreline.models import Fixture, Prediction, Round, User, ROLE_PLAYER, STATUS_COMPLETED
from scoreline.services.scoring import outcome

logger = logging.getLogger(__name__)


def _name_key(name: Optional[str]) -> Tuple[str, str]:
    text = name or ''
    folded = ''.join(c for c in unicodedata.normalize('NFKD', text) if not unicodedata.combining(c))
    return folded.casefold(), text


def accuracy_percent(correct: int, total: int) -> Optional[float]:
    if total == 0:
        return None
    return round(correct / total * 100, 1)


def _previous_ranks(previous) -> Dict[int, int]:
    if not previous:
        return {}
    if isinstance(previous, Mapping):
        return {int(uid): int(rank) for uid, rank in previous.items()}
    return {entry['user_id']: entry['rank'] for entry in previous}


def assign_ranks(entries: List[dict]) -> List[dict]:
    """Competition ranking over entries already sorted by points: 1, 1, 3, 4."""
    current_rank = 0
    last_points = None
    for position, entry in enumerate(entries, start=1):
        if entry['points'] != last_points:
            current_rank = position
            last_points = entry['points']
        entry['rank'] = current_rank
    return entries


def compute_standings(session, round_id=None, user_ids=None, previous=None, exclude_round_ids=None) -> List[dict]:
    """Ranked standings, overall or for one round, optionally for a subset of users.

    ``previous`` is an earlier snapshot (user id -> rank, or a list of
    entries); movement is the number of places gained against it.
    """
    if user_ids is not None:
        user_ids = list(user_ids)
        if not user_ids:
            return []

    players_query = session.query(User).filter(User.role == ROLE_PLAYER)
    if user_ids is not None:
        players_query = players_query.filter(User.id.in_(user_ids))
    players = players_query.all()
    if not players:
        return []

    stats = {
        player.id: {
            'user_id': player.id,
            'name': player.name,
            'team_name': player.team_name,
            'avatar_url': player.avatar_url,
            'points': 0,
            'total_predictions': 0,
            'correct_outcomes': 0,
            'exact_scores': 0,
        }
        for player in players
    }

    query = (
        session.query(
            Prediction.user_id,
            Prediction.predicted_home_goals,
            Prediction.predicted_away_goals,
            Prediction.points_awarded,
            Fixture.home_score,
            Fixture.away_score,
        )
        .join(Fixture, Prediction.fixture_id == Fixture.id)
        .join(Round, Prediction.round_id == Round.id)
        .filter(
            Round.status == STATUS_COMPLETED,
            Fixture.home_score.isnot(None),
            Fixture.away_score.isnot(None),
            Prediction.user_id.in_(list(stats)),
        )
    )
    if round_id is not None:
        query = query.filter(Prediction.round_id == round_id)
    if exclude_round_ids:
        query = query.filter(Prediction.round_id.notin_(list(exclude_round_ids)))

    for user_id, pred_home, pred_away, points, home_score, away_score in query:
        entry = stats[user_id]
        entry['total_predictions'] += 1
        entry['points'] += points or 0
        predicted_outcome = outcome(pred_home, pred_away)
        if predicted_outcome is not None and predicted_outcome == outcome(home_score, away_score):
            entry['correct_outcomes'] += 1
        if pred_home == home_score and pred_away == away_score:
            entry['exact_scores'] += 1

    ordered = sorted(stats.values(), key=lambda e: (-e['points'], _name_key(e['name']), e['user_id']))
    assign_ranks(ordered)

    previous_ranks = _previous_ranks(previous)
    standings = []
    for entry in ordered:
        prior = previous_ranks.get(entry['user_id'])
        standings.append({
            'user_id': entry['user_id'],
            'name': entry['name'],
            'team_name': entry['team_name'],
            'avatar_url': entry['avatar_url'],
            'rank': entry['rank'],
            'points': entry['points'],
            'total_predictions': entry['total_predictions'],
            'correct_outcomes': entry['correct_outcomes'],
            'exact_scores': entry['exact_scores'],
            'accuracy': accuracy_percent(entry['correct_outcomes'], entry['total_predictions']),
            'movement': prior - entry['rank'] if prior is not None else 0,
        })

    logger.debug("[standings] round=%s users=%s entries=%s",
                 round_id if round_id is not None else 'overall',
                 len(user_ids) if user_ids is not None else 'all', len(standings))
    return standings


def latest_completed_round_id(session) -> Optional[int]:
    rnd = (
        session.query(Round)
        .filter(Round.status == STATUS_COMPLETED)
        .order_by(Round.deadline.desc(), Round.id.desc())
        .first()
    )
    return rnd.id if rnd else None


def previous_overall_snapshot(session, user_ids=None) -> Dict[int, int]:
    """Overall ranks as they stood before the most recently completed round."""
    latest = latest_completed_round_id(session)
    if latest is None:
        return {}
    earlier = compute_standings(session, user_ids=user_ids, exclude_round_ids=[latest])
    return {entry['user_id']: entry['rank'] for entry in earlier}


def standings_version(session) -> Tuple:
    """Fingerprint of the rows standings read from.

    Row counts change on inserts and deletes, ``updated_at`` maxima on edits,
    whichever process made the write.
    """
    parts = []
    for model in (Round, Fixture, Prediction):
        count, last_update = session.query(func.count(model.id), func.max(model.updated_at)).one()
        parts.append((count, last_update))
    count, last_id = (
        session.query(func.count(User.id), func.max(User.id)).filter(User.role == ROLE_PLAYER).one()
    )
    parts.append((count, last_id))
    return tuple(parts)


class StandingsCache:
    """Computed standings keyed by (round id or None, user id set or None, variant, data version).

    Least recently used entries are evicted beyond ``maxsize``.
    """

    def __init__(self, maxsize: int = 128):
        self.maxsize = maxsize
        self._entries: 'OrderedDict[tuple, List[dict]]' = OrderedDict()

    @staticmethod
    def key(round_id=None, user_ids: Optional[Iterable[int]] = None, variant: Hashable = None,
            version: Hashable = None):
        return (round_id, frozenset(user_ids) if user_ids is not None else None, variant, version)

    def get_or_compute(self, key, compute):
        if key in self._entries:
            self._entries.move_to_end(key)
            return self._entries[key]
        value = compute()
        self._entries[key] = value
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
        return value

    def invalidate(self, round_id=None):
        """Drop the round's entries and every overall entry."""
        stale = [k for k in self._entries if k[0] is None or k[0] == round_id]
        for k in stale:
            del self._entries[k]

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries

"""Prediction ledger.

One prediction per (user, fixture). Writes are accepted only while the
round is open and before its deadline, and a player may flag at most
``round.joker_limit`` predictions per round as jokers.
"""
import logging
import random

from scoreline.errors import (
    JokerLimitError, NotFoundError, PermissionDeniedError, RoundLockedError, StateConflictError, ValidationError,
)
from scoreline.models import (
    Fixture, Prediction, User, ROLE_PLAYER, ROLE_VISITOR, STATUS_COMPLETED, utcnow,
)
from scoreline.services.rounds import get_active_round, get_round, get_round_fixtures, is_locked
from scoreline.services.validation import parse_non_negative_int

logger = logging.getLogger(__name__)


def _get_user(session, user_id):
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f'User {user_id} not found.')
    return user


def _get_writer(session, user_id):
    user = _get_user(session, user_id)
    if user.role != ROLE_PLAYER:
        raise PermissionDeniedError(f'Only players can submit predictions (role is {user.role}).')
    return user


def _get_open_round(session, round_id, now):
    rnd = get_round(session, round_id)
    if is_locked(rnd, now):
        raise RoundLockedError(f'Round {rnd.id} is not accepting predictions (status {rnd.status}).')
    return rnd


def _clean_entries(entries):
    if not isinstance(entries, list):
        raise ValidationError('Predictions must be a list.')
    cleaned = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError('Each prediction must be an object.')
        fixture_id = entry.get('fixture_id')
        if isinstance(fixture_id, bool) or not isinstance(fixture_id, int) or fixture_id <= 0:
            raise ValidationError('Invalid fixture ID found in predictions.')
        if fixture_id in seen:
            raise ValidationError(f'Fixture {fixture_id} appears more than once.')
        seen.add(fixture_id)
        is_joker = entry.get('is_joker', False)
        if not isinstance(is_joker, bool):
            raise ValidationError(f'Invalid is_joker value for fixture {fixture_id}. Must be true or false.')
        cleaned.append({
            'fixture_id': fixture_id,
            'home_goals': parse_non_negative_int(
                entry.get('home_goals'), f'Predicted home goals for fixture {fixture_id}', allow_none=True),
            'away_goals': parse_non_negative_int(
                entry.get('away_goals'), f'Predicted away goals for fixture {fixture_id}', allow_none=True),
            'is_joker': is_joker,
        })
    return cleaned


def submit_predictions(session, user_id, round_id, entries, now=None):
    """Upsert a batch of predictions for one round, all or nothing.

    The joker check counts the jokers in the batch plus the player's stored
    jokers on fixtures the batch does not touch.
    """
    now = now or utcnow()
    _get_writer(session, user_id)
    rnd = _get_open_round(session, round_id, now)
    cleaned = _clean_entries(entries)

    fixture_ids = [entry['fixture_id'] for entry in cleaned]
    fixtures = {f.id: f for f in session.query(Fixture).filter(Fixture.id.in_(fixture_ids)).all()} if fixture_ids else {}
    for fixture_id in fixture_ids:
        fixture = fixtures.get(fixture_id)
        if fixture is None:
            raise NotFoundError(f'Fixture {fixture_id} not found.')
        if fixture.round_id != rnd.id:
            raise ValidationError(f'Fixture {fixture_id} does not belong to round {rnd.id}.')

    existing = {
        p.fixture_id: p
        for p in session.query(Prediction).filter(Prediction.user_id == user_id, Prediction.round_id == rnd.id).all()
    }
    untouched_jokers = sum(1 for fid, p in existing.items() if p.is_joker and fid not in fixtures)
    batch_jokers = sum(1 for entry in cleaned if entry['is_joker'])
    if untouched_jokers + batch_jokers > rnd.joker_limit:
        logger.warning("[predictions-submit] user=%s round=%s jokers=%s limit=%s rejected",
                       user_id, rnd.id, untouched_jokers + batch_jokers, rnd.joker_limit)
        raise JokerLimitError(
            f'You can only mark {rnd.joker_limit} prediction(s) as a Joker in this round.'
        )

    try:
        for entry in cleaned:
            prediction = existing.get(entry['fixture_id'])
            if prediction is None:
                prediction = Prediction(user_id=user_id, fixture_id=entry['fixture_id'], round_id=rnd.id)
                session.add(prediction)
            prediction.predicted_home_goals = entry['home_goals']
            prediction.predicted_away_goals = entry['away_goals']
            prediction.is_joker = entry['is_joker']
            prediction.points_awarded = None
            prediction.submitted_at = now
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("[predictions-submit] user=%s round=%s count=%s", user_id, rnd.id, len(cleaned))
    return {'round_id': rnd.id, 'count': len(cleaned)}


def generate_random_predictions(session, user_id, round_id, now=None, rng=None, max_goals=4):
    """Fill every fixture the player has not predicted yet with random goals."""
    now = now or utcnow()
    _get_writer(session, user_id)
    rnd = _get_open_round(session, round_id, now)
    rng = rng or random.Random()

    predicted = {
        fid for (fid,) in session.query(Prediction.fixture_id)
        .filter(Prediction.user_id == user_id, Prediction.round_id == rnd.id)
    }
    created = 0
    try:
        for fixture in get_round_fixtures(session, rnd.id):
            if fixture.id in predicted:
                continue
            session.add(Prediction(
                user_id=user_id,
                fixture_id=fixture.id,
                round_id=rnd.id,
                predicted_home_goals=rng.randint(0, max_goals),
                predicted_away_goals=rng.randint(0, max_goals),
                is_joker=False,
                submitted_at=now,
            ))
            created += 1
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("[predictions-random] user=%s round=%s created=%s", user_id, rnd.id, created)
    return {'round_id': rnd.id, 'count': created}


def get_active_round_view(session, user_id, now=None):
    """The active round with its fixtures and this user's predictions merged in."""
    rnd = get_active_round(session)
    if rnd is None:
        return None
    predictions = {
        p.fixture_id: p
        for p in session.query(Prediction).filter(Prediction.user_id == user_id, Prediction.round_id == rnd.id)
    }
    fixtures = []
    for fixture in get_round_fixtures(session, rnd.id):
        item = fixture.to_dict()
        prediction = predictions.get(fixture.id)
        item['predicted_home_goals'] = prediction.predicted_home_goals if prediction else None
        item['predicted_away_goals'] = prediction.predicted_away_goals if prediction else None
        item['is_joker'] = prediction.is_joker if prediction else False
        fixtures.append(item)

    view = rnd.to_dict()
    view['locked'] = is_locked(rnd, now)
    view['jokers_used'] = sum(1 for p in predictions.values() if p.is_joker)
    view['fixtures'] = fixtures
    return view


def get_round_points(session, user_id, round_id):
    """Points breakdown of one user for a completed round."""
    user = _get_user(session, user_id)
    if user.role == ROLE_VISITOR:
        raise PermissionDeniedError('Visitors cannot view points breakdowns.')
    rnd = get_round(session, round_id)
    if rnd.status != STATUS_COMPLETED:
        raise StateConflictError(
            f'Points are only available for COMPLETED rounds. This round status is: {rnd.status}'
        )
    rows = (
        session.query(Prediction, Fixture)
        .join(Fixture, Prediction.fixture_id == Fixture.id)
        .filter(Prediction.user_id == user_id, Prediction.round_id == round_id)
        .order_by(Fixture.match_time.asc(), Fixture.id.asc())
        .all()
    )
    breakdown = []
    for prediction, fixture in rows:
        breakdown.append({
            'fixture_id': fixture.id,
            'home_team': fixture.home_team,
            'away_team': fixture.away_team,
            'home_score': fixture.home_score,
            'away_score': fixture.away_score,
            'predicted_home_goals': prediction.predicted_home_goals,
            'predicted_away_goals': prediction.predicted_away_goals,
            'is_joker': prediction.is_joker,
            'points_awarded': prediction.points_awarded,
        })
    return {
        'round_id': round_id,
        'total_points': sum(item['points_awarded'] or 0 for item in breakdown),
        'predictions': breakdown,
    }


def get_prediction_status(session, round_id):
    """Which players have predicted at least one fixture of the round."""
    get_round(session, round_id)
    players = session.query(User).filter(User.role == ROLE_PLAYER).order_by(User.name.asc()).all()
    predicted = {uid for (uid,) in session.query(Prediction.user_id).filter(Prediction.round_id == round_id).distinct()}
    return [
        {
            'user_id': player.id,
            'name': player.name,
            'avatar_url': player.avatar_url,
            'has_predicted': player.id in predicted,
        }
        for player in players
    ]

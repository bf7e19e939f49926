import logging
import random

from scoreline.errors import NotFoundError, ValidationError
from scoreline.models import Fixture, FIXTURE_FINISHED, FIXTURE_SCHEDULED
from scoreline.services.rounds import get_round, get_round_fixtures
from scoreline.services.validation import parse_datetime, parse_non_negative_int, require_text

logger = logging.getLogger(__name__)


def get_fixture(session, fixture_id):
    fixture = session.get(Fixture, fixture_id)
    if fixture is None:
        raise NotFoundError(f'Fixture {fixture_id} not found.')
    return fixture


def _build_fixture(round_id, record):
    home_team = require_text(record.get('home_team'), 'home_team')
    away_team = require_text(record.get('away_team'), 'away_team')
    if home_team == away_team:
        raise ValidationError('Home team and away team must be different.')
    home_score = parse_non_negative_int(record.get('home_score'), 'home_score', allow_none=True)
    away_score = parse_non_negative_int(record.get('away_score'), 'away_score', allow_none=True)
    external_id = record.get('external_id')
    if external_id is not None:
        external_id = parse_non_negative_int(external_id, 'external_id')
    status = record.get('status') or (FIXTURE_FINISHED if home_score is not None and away_score is not None else FIXTURE_SCHEDULED)
    return Fixture(
        round_id=round_id,
        home_team=home_team,
        away_team=away_team,
        match_time=parse_datetime(record.get('match_time'), 'match_time'),
        home_score=home_score,
        away_score=away_score,
        status=status,
        external_id=external_id,
    )


def add_fixture(session, round_id, home_team, away_team, match_time, external_id=None):
    get_round(session, round_id)
    fixture = _build_fixture(round_id, {
        'home_team': home_team,
        'away_team': away_team,
        'match_time': match_time,
        'external_id': external_id,
    })
    session.add(fixture)
    session.commit()
    return fixture


def import_fixtures(session, round_id, records):
    """Insert raw fixture records supplied by an import collaborator.

    Only the presence and shape of the fields is checked; competition or
    matchday semantics belong to the upstream provider. One bad record
    rejects the whole batch.
    """
    get_round(session, round_id)
    if not isinstance(records, list):
        raise ValidationError('Fixture records must be a list.')
    fixtures = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValidationError(f'Fixture record {index} must be an object.')
        try:
            fixtures.append(_build_fixture(round_id, record))
        except ValidationError as exc:
            raise ValidationError(f'Fixture record {index}: {exc.message}')

    try:
        session.add_all(fixtures)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("[fixture-import] round=%s imported=%s", round_id, len(fixtures))
    return len(fixtures)


def enter_result(session, fixture_id, home_score, away_score):
    fixture = get_fixture(session, fixture_id)
    home_score = parse_non_negative_int(home_score, 'home_score')
    away_score = parse_non_negative_int(away_score, 'away_score')
    fixture.home_score = home_score
    fixture.away_score = away_score
    fixture.status = FIXTURE_FINISHED
    session.commit()
    logger.info("[fixture-result] fixture=%s round=%s score=%s-%s",
                fixture.id, fixture.round_id, fixture.home_score, fixture.away_score)
    return fixture


def delete_fixture(session, fixture_id):
    fixture = get_fixture(session, fixture_id)
    round_id = fixture.round_id
    session.delete(fixture)
    session.commit()
    logger.info("[fixture-delete] fixture=%s round=%s", fixture_id, round_id)
    return round_id


def generate_random_results(session, round_id, rng=None, max_goals=4):
    """Fill every fixture of a round with a random final score (dev/demo)."""
    get_round(session, round_id)
    rng = rng or random.Random()
    fixtures = get_round_fixtures(session, round_id)
    try:
        for fixture in fixtures:
            fixture.home_score = rng.randint(0, max_goals)
            fixture.away_score = rng.randint(0, max_goals)
            fixture.status = FIXTURE_FINISHED
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("[fixture-random-results] round=%s fixtures=%s", round_id, len(fixtures))
    return len(fixtures)

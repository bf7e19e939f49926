import logging
import math
from collections.abc import Mapping
from typing import Any, Optional

from scoreline.errors import NotFoundError, StateConflictError
from scoreline.models import Fixture, Prediction, Round, STATUS_CLOSED, STATUS_COMPLETED

logger = logging.getLogger(__name__)

EXACT_SCORE_POINTS = 3
CORRECT_OUTCOME_POINTS = 1
JOKER_MULTIPLIER = 2


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _as_goals(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f'boolean is not a goal count: {value!r}')
    if isinstance(value, int):
        number = value
    else:
        as_float = float(value)
        if not math.isfinite(as_float) or not as_float.is_integer():
            raise ValueError(f'not an integral goal count: {value!r}')
        number = int(as_float)
    if number < 0:
        raise ValueError(f'negative goal count: {value!r}')
    return number


def outcome(home: Optional[int], away: Optional[int]) -> Optional[str]:
    """Classify a score pair as home win 'H', away win 'A' or draw 'D'."""
    if home is None or away is None:
        return None
    if home > away:
        return 'H'
    if home < away:
        return 'A'
    return 'D'


def calculate_points(prediction: Any, result: Any) -> int:
    """Points for one prediction against an actual result.

    Exact score is worth 3, the right outcome alone 1, anything else 0. A
    joker doubles positive points only. Missing goals on either side score
    0; so do values that are not non-negative integers, which are logged
    for an operator instead of raised.
    """
    raw = (
        _field(prediction, 'predicted_home_goals'),
        _field(prediction, 'predicted_away_goals'),
        _field(result, 'home_score'),
        _field(result, 'away_score'),
    )
    if any(value is None for value in raw):
        return 0

    try:
        pred_home, pred_away, actual_home, actual_away = (_as_goals(value) for value in raw)
    except (TypeError, ValueError) as exc:
        logger.error(
            "[data-integrity] invalid score values during point calculation prediction=%s result=%s: %s",
            _field(prediction, 'id'), _field(result, 'id'), exc,
        )
        return 0

    if pred_home == actual_home and pred_away == actual_away:
        base_points = EXACT_SCORE_POINTS
    elif outcome(pred_home, pred_away) == outcome(actual_home, actual_away):
        base_points = CORRECT_OUTCOME_POINTS
    else:
        base_points = 0

    if _field(prediction, 'is_joker') is True and base_points > 0:
        return base_points * JOKER_MULTIPLIER
    return base_points


def score_round(session, round_id: int) -> dict:
    """Apply scoring to every finished fixture of a CLOSED round.

    Points are overwritten, never accumulated, so re-scoring a round gives
    the same result. Fixtures still missing a score are skipped and their
    predictions keep whatever points they had. The point writes and the move
    to COMPLETED commit together.
    """
    rnd = session.get(Round, round_id)
    if rnd is None:
        raise NotFoundError(f'Round {round_id} not found.')
    if rnd.status != STATUS_CLOSED:
        raise StateConflictError(
            f"Scoring can only be initiated for rounds with status 'CLOSED'. Current status: '{rnd.status}'."
        )

    fixtures = session.query(Fixture).filter(Fixture.round_id == round_id).all()
    scored_fixtures = 0
    skipped_fixtures = []
    scored_predictions = 0
    try:
        for fixture in fixtures:
            if not fixture.has_result:
                skipped_fixtures.append(fixture.id)
                continue
            predictions = session.query(Prediction).filter(Prediction.fixture_id == fixture.id).all()
            for prediction in predictions:
                prediction.points_awarded = calculate_points(prediction, fixture)
                scored_predictions += 1
            scored_fixtures += 1
        rnd.status = STATUS_COMPLETED
        session.commit()
    except Exception:
        session.rollback()
        raise

    if skipped_fixtures:
        logger.warning(
            "[score-round] round=%s skipped fixtures without results: %s",
            round_id, ', '.join(str(fid) for fid in skipped_fixtures),
        )
    logger.info(
        "[score-round] round=%s fixtures=%s predictions=%s status=%s",
        round_id, scored_fixtures, scored_predictions, STATUS_COMPLETED,
    )
    return {
        'round_id': round_id,
        'status': STATUS_COMPLETED,
        'scored_fixtures': scored_fixtures,
        'skipped_fixtures': skipped_fixtures,
        'scored_predictions': scored_predictions,
    }

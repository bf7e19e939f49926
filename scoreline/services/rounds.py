"""Round lifecycle: creation, edits, status transitions and the write lock."""
import logging

from flask import current_app, has_app_context

from scoreline.errors import NotFoundError, StateConflictError, ValidationError
from scoreline.models import (
    Fixture, Round, ROUND_STATUSES, STATUS_CLOSED, STATUS_COMPLETED, STATUS_OPEN, STATUS_SETUP, utcnow,
)
from scoreline.services.validation import parse_datetime, parse_non_negative_int, require_text

logger = logging.getLogger(__name__)

# Reset to SETUP is allowed from anywhere and handled separately.
# COMPLETED is entered only by scoring.
ALLOWED_TRANSITIONS = {
    (STATUS_SETUP, STATUS_OPEN),
    (STATUS_OPEN, STATUS_CLOSED),
    (STATUS_COMPLETED, STATUS_CLOSED),
}


def get_round(session, round_id):
    rnd = session.get(Round, round_id)
    if rnd is None:
        raise NotFoundError(f'Round {round_id} not found.')
    return rnd


def is_locked(rnd, now=None):
    """True when the round refuses prediction writes."""
    now = now or utcnow()
    return rnd.status != STATUS_OPEN or now >= rnd.deadline


def _default_joker_limit():
    if has_app_context():
        return current_app.config.get('DEFAULT_JOKER_LIMIT', 1)
    return 1


def create_round(session, name, deadline, created_by=None, joker_limit=None):
    """Create a round in SETUP; ``joker_limit`` falls back to DEFAULT_JOKER_LIMIT."""
    if joker_limit is None:
        joker_limit = _default_joker_limit()
    rnd = Round(
        name=require_text(name, 'Round name'),
        deadline=parse_datetime(deadline, 'deadline'),
        joker_limit=parse_non_negative_int(joker_limit, 'joker_limit'),
        created_by=created_by,
        status=STATUS_SETUP,
    )
    session.add(rnd)
    session.commit()
    logger.info("[round-create] round=%s name=%r deadline=%s", rnd.id, rnd.name, rnd.deadline.isoformat())
    return rnd


def update_round(session, round_id, name=None, deadline=None, joker_limit=None):
    """Change only the fields that were provided; nothing changes if any is invalid."""
    rnd = get_round(session, round_id)
    changes = {}
    if name is not None:
        changes['name'] = require_text(name, 'Round name')
    if deadline is not None:
        changes['deadline'] = parse_datetime(deadline, 'deadline')
    if joker_limit is not None:
        changes['joker_limit'] = parse_non_negative_int(joker_limit, 'joker_limit')

    if 'deadline' in changes and rnd.status != STATUS_SETUP:
        logger.warning("[round-update] round=%s deadline changed while %s", rnd.id, rnd.status)
    for field, value in changes.items():
        setattr(rnd, field, value)
    session.commit()
    return rnd


def delete_round(session, round_id):
    """Delete a round together with its fixtures and predictions."""
    rnd = get_round(session, round_id)
    try:
        session.delete(rnd)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("[round-delete] round=%s", round_id)


def list_rounds(session, status=None):
    query = session.query(Round)
    if status:
        if status not in ROUND_STATUSES:
            raise ValidationError(f'Unknown round status {status!r}.')
        query = query.filter(Round.status == status)
    return query.order_by(Round.deadline.asc(), Round.id.asc()).all()


def get_round_fixtures(session, round_id):
    return (
        session.query(Fixture)
        .filter(Fixture.round_id == round_id)
        .order_by(Fixture.match_time.asc(), Fixture.id.asc())
        .all()
    )


def get_round_detail(session, round_id):
    rnd = get_round(session, round_id)
    detail = rnd.to_dict()
    detail['fixtures'] = [f.to_dict() for f in get_round_fixtures(session, round_id)]
    return detail


def get_active_round(session):
    """The OPEN round with the earliest deadline, or None."""
    return (
        session.query(Round)
        .filter(Round.status == STATUS_OPEN)
        .order_by(Round.deadline.asc(), Round.id.asc())
        .first()
    )


def set_status(session, round_id, new_status):
    """Move a round to ``new_status``.

    - SETUP -> OPEN and OPEN -> CLOSED at any time, deadline or not
    - COMPLETED -> CLOSED re-opens a scored round for re-scoring
    - anything -> SETUP resets the round; predictions are kept
    - COMPLETED itself is only reachable through scoring
    """
    if new_status not in ROUND_STATUSES:
        raise ValidationError(f'Invalid status {new_status!r}. Use SETUP, OPEN or CLOSED.')
    rnd = get_round(session, round_id)
    current = rnd.status
    if new_status == current:
        return rnd
    if new_status == STATUS_COMPLETED:
        raise StateConflictError('A round becomes COMPLETED only by scoring it.')
    if new_status != STATUS_SETUP and (current, new_status) not in ALLOWED_TRANSITIONS:
        raise StateConflictError(f'Cannot move round {rnd.id} from {current} to {new_status}.')

    rnd.status = new_status
    session.commit()
    logger.info("[round-status] round=%s %s -> %s", rnd.id, current, new_status)
    return rnd

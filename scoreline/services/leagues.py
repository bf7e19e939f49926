import logging

from scoreline.errors import NotFoundError, PermissionDeniedError, ValidationError
from scoreline.models import League, LeagueMembership, User
from scoreline.services.validation import require_text

logger = logging.getLogger(__name__)


def get_league(session, league_id):
    league = session.get(League, league_id)
    if league is None:
        raise NotFoundError(f'League {league_id} not found.')
    return league


def create_league(session, name, creator_id):
    """Create a league; the creator is its first member."""
    if session.get(User, creator_id) is None:
        raise NotFoundError(f'User {creator_id} not found.')
    league = League(name=require_text(name, 'League name'), creator_id=creator_id)
    session.add(league)
    session.flush()
    session.add(LeagueMembership(league_id=league.id, user_id=creator_id))
    session.commit()
    logger.info("[league-create] league=%s creator=%s code=%s", league.id, creator_id, league.invite_code)
    return league


def join_league(session, invite_code, user_id):
    if not isinstance(invite_code, str) or not invite_code.strip():
        raise ValidationError('Invite code is required.')
    league = session.query(League).filter_by(invite_code=invite_code.strip().upper()).first()
    if league is None:
        raise NotFoundError('League not found for that invite code.')
    if session.query(LeagueMembership).filter_by(league_id=league.id, user_id=user_id).first():
        raise ValidationError('You are already a member of this league.')
    session.add(LeagueMembership(league_id=league.id, user_id=user_id))
    session.commit()
    logger.info("[league-join] league=%s user=%s", league.id, user_id)
    return league


def get_league_member_ids(session, league_id):
    get_league(session, league_id)
    return [uid for (uid,) in session.query(LeagueMembership.user_id).filter_by(league_id=league_id)]


def require_member(session, league_id, user_id):
    member_ids = get_league_member_ids(session, league_id)
    if user_id not in member_ids:
        raise PermissionDeniedError('You are not a member of this league.')
    return member_ids


def list_user_leagues(session, user_id):
    return (
        session.query(League)
        .join(LeagueMembership, LeagueMembership.league_id == League.id)
        .filter(LeagueMembership.user_id == user_id)
        .order_by(League.name.asc())
        .all()
    )


def _membership(session, league_id, user_id):
    return session.query(LeagueMembership).filter_by(league_id=league_id, user_id=user_id).first()


def leave_league(session, league_id, user_id):
    """Drop the user's membership; the creator has to delete the league instead."""
    league = get_league(session, league_id)
    membership = _membership(session, league_id, user_id)
    if membership is None:
        raise NotFoundError('You are not a member of this league.')
    if league.creator_id == user_id:
        raise PermissionDeniedError('League creators cannot leave their own league. Delete it instead.')
    session.delete(membership)
    session.commit()
    logger.info("[league-leave] league=%s user=%s", league_id, user_id)
    return league


def remove_member(session, league_id, member_id, acting_user_id):
    league = get_league(session, league_id)
    if league.creator_id != acting_user_id:
        raise PermissionDeniedError('Only the league creator can remove members.')
    if member_id == acting_user_id:
        raise ValidationError('You cannot remove yourself. Delete the league instead.')
    if member_id == league.creator_id:
        raise ValidationError('The league creator cannot be removed.')
    membership = _membership(session, league_id, member_id)
    if membership is None:
        raise NotFoundError(f'User {member_id} is not a member of this league.')
    session.delete(membership)
    session.commit()
    logger.info("[league-remove] league=%s member=%s by=%s", league_id, member_id, acting_user_id)
    return league


def delete_league(session, league_id, acting_user_id):
    """Delete the league and every membership; creator only."""
    league = get_league(session, league_id)
    if league.creator_id != acting_user_id:
        raise PermissionDeniedError('Only the league creator can delete the league.')
    session.delete(league)
    session.commit()
    logger.info("[league-delete] league=%s by=%s", league_id, acting_user_id)

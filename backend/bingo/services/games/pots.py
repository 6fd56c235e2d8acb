"""Snowball pot ledger.

A snowball pot is a jackpot shared across games: it grows (more calls allowed,
bigger prize) every time a snowball game finishes without a jackpot winner,
and drops back to its base values when someone wins it. The outcome is applied
once per game completion, never per stage, and never for test sessions.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from bingo import db
from bingo.models import Game, GameState, SnowballPot, SnowballPotHistory, Winner
from .actions import ADMIN_ONLY, core_action, resolve_now
from .errors import PotInUse, PotNotFound


def is_jackpot_win(game, stage, call_count_at_win) -> bool:
    """Server-side jackpot eligibility, checked against the pot's live call threshold."""
    if game is None or game.type != 'snowball' or stage != 'Full House':
        return False
    pot = db.session.get(SnowballPot, game.snowball_pot_id) if game.snowball_pot_id else None
    if pot is None:
        return False
    return call_count_at_win <= pot.current_max_calls


def is_pot_in_use(pot_id) -> bool:
    """True while any game linked to the pot is in progress."""
    active = (
        db.session.query(GameState.id)
        .join(Game, Game.id == GameState.game_id)
        .filter(Game.snowball_pot_id == pot_id, GameState.status == 'in_progress')
        .count()
    )
    return active > 0


def _get_pot(pot_id, for_update=False):
    query = SnowballPot.query.filter_by(id=pot_id)
    if for_update:
        query = query.with_for_update(nowait=False)
    pot = query.first()
    if pot is None:
        raise PotNotFound(pot_id)
    return pot


def _append_history(pot_id, change_type, old_max, new_max, old_jackpot, new_jackpot,
                    changed_by=None, game_id=None):
    """Best-effort audit insert. The pot values are already committed and stay put."""
    entry = SnowballPotHistory(
        snowball_pot_id=pot_id,
        change_type=change_type,
        old_val_max=old_max,
        new_val_max=new_max,
        old_val_jackpot=old_jackpot,
        new_val_jackpot=new_jackpot,
        changed_by=changed_by,
        game_id=game_id,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(
            f"[pot-history] pot={pot_id} change={change_type} history insert failed: {exc}", exc_info=True
        )


def apply_game_outcome(game, now, actor_id=None):
    """Roll the game's pot over or reset it. Call exactly once per completion.

    Commits the pending game-state write together with the pot update, then
    appends the history row. Calling it twice for one completion would
    double-rollover or double-reset. Returns the change type applied, or None.
    """
    session = game.session
    if session is not None and session.is_test_session:
        current_app.logger.info(f"[pot] game={game.id} test session: snowball pot updates skipped")
        return None
    if game.type != 'snowball' or not game.snowball_pot_id:
        return None

    pot = _get_pot(game.snowball_pot_id, for_update=True)
    jackpot_winners = Winner.query.filter_by(game_id=game.id, is_jackpot=True).count()
    old_max, old_jackpot = pot.current_max_calls, pot.current_jackpot_amount

    if jackpot_winners > 0:
        if pot.is_at_base():
            current_app.logger.info(f"[pot] pot={pot.id} game={game.id} jackpot won, pot already at base")
            return None
        change_type = 'jackpot_won'
        pot.current_max_calls = pot.base_max_calls
        pot.current_jackpot_amount = pot.base_jackpot_amount
        pot.last_awarded_at = now
    else:
        change_type = 'rollover'
        pot.current_max_calls = old_max + pot.calls_increment
        pot.current_jackpot_amount = old_jackpot + pot.jackpot_increment

    new_max, new_jackpot = pot.current_max_calls, pot.current_jackpot_amount
    pot_id = pot.id
    db.session.commit()
    current_app.logger.info(
        f"[pot] pot={pot_id} game={game.id} {change_type} max_calls {old_max}->{new_max} "
        f"jackpot {old_jackpot}->{new_jackpot}"
    )
    _append_history(pot_id, change_type, old_max, new_max, old_jackpot, new_jackpot,
                    changed_by=actor_id, game_id=game.id)
    return change_type


@core_action('pot', roles=None, subject='pot', notify=False)
def get_pot(pot_id, caller):
    pot = _get_pot(pot_id)
    data = pot.to_dict()
    data['in_use'] = is_pot_in_use(pot_id)
    return data


@core_action('pot-history', subject='pot', notify=False)
def pot_history(pot_id, caller):
    pot = _get_pot(pot_id)
    return [entry.to_dict() for entry in pot.history.all()]


@core_action('pot-in-use', subject='pot', notify=False)
def pot_in_use(pot_id, caller):
    _get_pot(pot_id)
    return {'in_use': is_pot_in_use(pot_id)}


@core_action('pot-reset', roles=ADMIN_ONLY, subject='pot', notify=False)
def reset_pot(pot_id, caller, now=None):
    """Manual admin reset back to base values, refused while a game uses the pot."""
    pot = _get_pot(pot_id, for_update=True)
    if is_pot_in_use(pot_id):
        raise PotInUse()
    old_max, old_jackpot = pot.current_max_calls, pot.current_jackpot_amount
    pot.current_max_calls = pot.base_max_calls
    pot.current_jackpot_amount = pot.base_jackpot_amount
    pot.last_awarded_at = None
    new_max, new_jackpot = pot.current_max_calls, pot.current_jackpot_amount
    db.session.commit()
    current_app.logger.info(f"[pot-reset] pot={pot_id} by={caller.id}")
    _append_history(pot_id, 'manual_reset', old_max, new_max, old_jackpot, new_jackpot, changed_by=caller.id)
    return _get_pot(pot_id).to_dict()


@core_action('pot-delete', roles=ADMIN_ONLY, subject='pot', notify=False)
def delete_pot(pot_id, caller):
    pot = _get_pot(pot_id, for_update=True)
    if is_pot_in_use(pot_id):
        raise PotInUse()
    Game.query.filter_by(snowball_pot_id=pot_id).update({'snowball_pot_id': None}, synchronize_session=False)
    db.session.delete(pot)
    current_app.logger.info(f"[pot-delete] pot={pot_id} by={caller.id}")
    return {'deleted': pot_id}

from flask import current_app

from bingo.models import Winner
from .actions import core_action, resolve_now
from .errors import GameNotCallable, GameNotInProgress, NoMoreNumbers, NothingToVoid, WinnerExistsAtCall
from .lease import require_controller


@core_action('call')
def call_next(game_id, caller, now=None):
    """Reveal the next number of the game's sequence."""
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    if state.status != 'in_progress':
        raise GameNotCallable('Game is not in progress.')
    if state.on_break:
        raise GameNotCallable('Game is on a break.')
    if state.paused_for_validation:
        raise GameNotCallable('Game is paused while a claim is checked.')

    sequence = state.number_sequence or []
    count = state.numbers_called_count
    if count >= len(sequence):
        raise NoMoreNumbers()

    next_number = sequence[count]
    # called_numbers is always the sequence prefix of length numbers_called_count
    state.called_numbers = sequence[:count + 1]
    state.numbers_called_count = count + 1
    state.last_call_at = now
    current_app.logger.info(f"[call] game={game_id} number={next_number} count={state.numbers_called_count}")
    return {'next_number': next_number, 'numbers_called_count': state.numbers_called_count}


@core_action('void')
def void_last_number(game_id, caller, now=None):
    """Undo the most recent call unless a winner was recorded on it."""
    state = require_controller(game_id, caller.id)
    if state.status != 'in_progress':
        raise GameNotInProgress('Cannot void number for a game not in progress.')
    count = state.numbers_called_count
    if count == 0:
        raise NothingToVoid()

    winners_at_call = Winner.query.filter_by(game_id=game_id, call_count_at_win=count).count()
    if winners_at_call > 0:
        raise WinnerExistsAtCall()

    called = state.called_numbers
    voided = called[-1] if called else None
    state.called_numbers = called[:count - 1]
    state.numbers_called_count = count - 1
    # last_call_at is left alone so viewers do not replay a reveal
    state.clear_win_display()
    current_app.logger.info(f"[void] game={game_id} number={voided} count={state.numbers_called_count}")
    return {'voided_number': voided, 'numbers_called_count': state.numbers_called_count}


@core_action('break')
def toggle_break(game_id, caller, on_break, now=None):
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    if state.status != 'in_progress':
        raise GameNotInProgress('Cannot toggle break for a game not in progress.')
    state.on_break = bool(on_break)
    state.paused_for_validation = False
    state.clear_win_display()
    state.last_call_at = now
    current_app.logger.info(f"[break] game={game_id} on_break={state.on_break}")
    return {'on_break': state.on_break}

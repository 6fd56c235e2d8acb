"""Game lifecycle and win/stage progression.

Lifecycle: not_started -> in_progress -> completed, with a completed game
reopenable. While in progress, a game is either calling, paused for claim
validation (which is also the state a win is announced in), or on a break.
Recording a winner and moving to the next stage are separate steps so several
winners can share a stage before the host advances.
"""
from flask import current_app

from bingo import db
from bingo.models import Game, Winner, WIN_STAGES
from .actions import ADMIN_ONLY, core_action, load_state, resolve_now
from .errors import (
    GameInProgress,
    GameNotFound,
    GameNotInProgress,
    InvalidStage,
    InvalidWinner,
    StaleStageIndex,
)
from .lease import acquire_lease, require_controller
from .pots import apply_game_outcome, is_jackpot_win
from .sequence import generate_number_sequence

JACKPOT = 'snowball'

WIN_DISPLAY = {
    'Line': ('line', 'LINE WINNER!'),
    'Two Lines': ('two_lines', 'TWO LINES WINNER!'),
    'Full House': ('full_house', 'FULL HOUSE WINNER!'),
    JACKPOT: ('snowball', 'JACKPOT WIN!'),
}


def win_display_for(stage_or_jackpot):
    if stage_or_jackpot == 'jackpot':
        stage_or_jackpot = JACKPOT
    return WIN_DISPLAY.get(stage_or_jackpot, ('win', 'WINNER!'))


def _get_game(game_id) -> Game:
    game = db.session.get(Game, game_id)
    if game is None:
        raise GameNotFound(game_id)
    return game


def _require_in_progress(state, message=None):
    if state.status != 'in_progress':
        raise GameNotInProgress(message)


def _complete(state, game, actor_id, now):
    """Single completion path; the only place the pot ledger runs."""
    state.status = 'completed'
    state.ended_at = now
    current_app.logger.info(
        f"[complete] game={game.id} stage_index={state.current_stage_index} calls={state.numbers_called_count}"
    )
    apply_game_outcome(game, now, actor_id=actor_id)


def _move_stage(state, game, actor_id, now):
    stage_count = len(game.stage_sequence)
    new_index = state.current_stage_index + 1
    state.paused_for_validation = False
    state.clear_win_display()
    if new_index >= stage_count:
        state.current_stage_index = max(stage_count - 1, 0)
        _complete(state, game, actor_id, now)
    else:
        state.current_stage_index = new_index
        current_app.logger.info(f"[stage] game={game.id} stage={game.stage_sequence[new_index]} index={new_index}")
    return {
        'current_stage_index': state.current_stage_index,
        'status': state.status,
    }


@core_action('start')
def start_game(game_id, caller, now=None):
    """Start a fresh game, reopen a completed one, or just retake a running one.

    The caller always ends up holding the lease; a live lease held by another
    host makes the whole start fail.
    """
    now = resolve_now(now)
    state = load_state(game_id)
    game = _get_game(game_id)
    acquire_lease(state, caller.id, now)

    if state.status == 'completed':
        # Reopen: call history and stage position survive so mistakes can be corrected
        state.status = 'in_progress'
        state.ended_at = None
        state.paused_for_validation = False
        state.clear_win_display()
        current_app.logger.info(f"[reopen] game={game_id} host={caller.id} calls={state.numbers_called_count}")
    elif state.status == 'not_started':
        state.number_sequence = generate_number_sequence(current_app.config.get('NUMBER_SEQUENCE_SEED'))
        state.called_numbers = []
        state.numbers_called_count = 0
        state.current_stage_index = 0
        state.status = 'in_progress'
        state.started_at = now
        state.ended_at = None
        state.last_call_at = None
        state.on_break = False
        state.paused_for_validation = False
        state.call_delay_seconds = int(current_app.config.get('DEFAULT_CALL_DELAY_SEC', 3))
        state.clear_win_display()
        current_app.logger.info(f"[start] game={game_id} host={caller.id}")

    session = game.session
    if session is not None and (session.status != 'running' or session.active_game_id != game.id):
        session.status = 'running'
        session.active_game_id = game.id
    return state.to_dict()


@core_action('pause')
def pause_for_validation(game_id, caller, now=None):
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    state.paused_for_validation = True
    state.clear_win_display()
    return {'paused_for_validation': True}


@core_action('resume')
def resume_game(game_id, caller, now=None):
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    state.paused_for_validation = False
    state.clear_win_display()
    return {'paused_for_validation': False}


@core_action('announce')
def announce_win(game_id, caller, stage_or_jackpot, now=None):
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    if not isinstance(stage_or_jackpot, str):
        raise InvalidStage()
    state.display_win_type, state.display_win_text = win_display_for(stage_or_jackpot)
    # Announcing keeps the display frozen, same as a claim check
    state.paused_for_validation = True
    return {'display_win_type': state.display_win_type, 'display_win_text': state.display_win_text}


@core_action('winner')
def record_winner(game_id, caller, stage, winner_name, prize_description=None,
                  call_count_at_win=None, prize_given=False, now=None):
    """Insert a winner for ``stage``. Jackpot status is decided here, never by the client."""
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    game = _get_game(game_id)
    if not isinstance(stage, str) or stage not in WIN_STAGES or stage not in game.stage_sequence:
        raise InvalidStage(f"Stage {stage!r} is not part of this game.")
    if winner_name is not None and not isinstance(winner_name, str):
        raise InvalidWinner('Winner name must be text.')
    name = (winner_name or '').strip()
    if not name:
        raise InvalidWinner('Winner name is required.')
    if call_count_at_win is None:
        call_count_at_win = state.numbers_called_count
    if call_count_at_win < 0 or call_count_at_win > state.numbers_called_count:
        raise InvalidWinner(
            f"Call count {call_count_at_win} is outside the {state.numbers_called_count} numbers called."
        )

    is_jackpot = is_jackpot_win(game, stage, call_count_at_win)
    if prize_description is None:
        prize_description = game.prizes.get(stage)
    winner = Winner(
        session_id=game.session_id,
        game_id=game.id,
        stage=stage,
        winner_name=name,
        prize_description=prize_description,
        call_count_at_win=call_count_at_win,
        is_jackpot=is_jackpot,
        prize_given=bool(prize_given),
    )
    db.session.add(winner)

    # Show the winner but stay on this stage; advancing is a separate step
    state.display_win_type, state.display_win_text = win_display_for(JACKPOT if is_jackpot else stage)
    state.display_winner_name = name
    db.session.flush()
    current_app.logger.info(
        f"[winner] game={game_id} stage={stage} call_count={call_count_at_win} jackpot={is_jackpot} winner={winner.id}"
    )
    return winner.to_dict()


@core_action('advance')
def advance_to_next_stage(game_id, caller, now=None):
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    return _move_stage(state, _get_game(game_id), caller.id, now)


@core_action('skip')
def skip_stage(game_id, caller, current_index=None, total_stages=None, now=None):
    """Move past the current stage with no winner.

    ``current_index``/``total_stages`` are what the host's screen showed; if
    they no longer match the record the skip is refused instead of skipping
    twice.
    """
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    game = _get_game(game_id)
    if current_index is not None and current_index != state.current_stage_index:
        raise StaleStageIndex()
    if total_stages is not None and total_stages != len(game.stage_sequence):
        raise StaleStageIndex()
    current_app.logger.info(f"[skip] game={game_id} index={state.current_stage_index}")
    return _move_stage(state, game, caller.id, now)


@core_action('end')
def end_game(game_id, caller, now=None):
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    _require_in_progress(state)
    _complete(state, _get_game(game_id), caller.id, now)
    return {'status': 'completed'}


@core_action('prize-given')
def toggle_prize_given(game_id, caller, winner_id, prize_given):
    require_controller(game_id, caller.id)
    winner = Winner.query.filter_by(id=winner_id, game_id=game_id).first()
    if winner is None:
        raise InvalidWinner('Winner not found.')
    winner.prize_given = bool(prize_given)
    return winner.to_dict()


@core_action('delete-winner')
def delete_winner(game_id, caller, winner_id):
    state = require_controller(game_id, caller.id)
    winner = Winner.query.filter_by(id=winner_id, game_id=game_id).first()
    if winner is None:
        raise InvalidWinner('Winner not found.')
    if state.display_winner_name == winner.winner_name:
        state.clear_win_display()
    db.session.delete(winner)
    current_app.logger.info(f"[delete-winner] game={game_id} winner={winner_id} call_count={winner.call_count_at_win}")
    return {'deleted': winner_id}


@core_action('reset', roles=ADMIN_ONLY)
def reset_game(game_id, caller, now=None):
    """Wipe a game that is not running back to not_started, winners included."""
    state = load_state(game_id)
    if state.status == 'in_progress':
        raise GameInProgress('Cannot reset a game that is currently in progress.')
    Winner.query.filter_by(game_id=game_id).delete(synchronize_session=False)
    state.number_sequence = None
    state.called_numbers = []
    state.numbers_called_count = 0
    state.current_stage_index = 0
    state.status = 'not_started'
    state.on_break = False
    state.paused_for_validation = False
    state.clear_win_display()
    state.controlling_host_id = None
    state.controller_last_seen_at = None
    state.started_at = None
    state.ended_at = None
    state.last_call_at = None
    current_app.logger.info(f"[reset] game={game_id} by={caller.id}")
    return state.to_dict()

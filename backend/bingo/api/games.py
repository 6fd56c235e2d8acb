from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
import time

from bingo.services.games import calls, claims, lease, snapshot, stages

games = Blueprint('games', __name__)

_last_controller_action: dict[str, float] = {}


def _respond(result):
    return jsonify(result.to_dict()), result.status_code


def _bad_request(message):
    return jsonify({'success': False, 'error': message, 'code': 'BadRequest'}), 400


def _debounced(action: str, game_id: int) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except Exception:
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{action}:{game_id}:{getattr(current_user, 'id', None)}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


def _optional_int(data, key):
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(key)
    return value


@games.route('/<int:game_id>/state', methods=['GET'])
def get_game_state(game_id):
    return _respond(snapshot.get_snapshot(game_id, current_user))


@games.route('/<int:game_id>/lease', methods=['GET'])
def get_lease(game_id):
    return _respond(lease.lease_status(game_id, current_user))


@games.route('/<int:game_id>/start', methods=['POST'])
def start_game(game_id):
    return _respond(stages.start_game(game_id, current_user))


@games.route('/<int:game_id>/take-control', methods=['POST'])
def take_control(game_id):
    return _respond(lease.try_acquire(game_id, current_user))


@games.route('/<int:game_id>/heartbeat', methods=['POST'])
def heartbeat(game_id):
    return _respond(lease.renew(game_id, current_user))


@games.route('/<int:game_id>/release', methods=['POST'])
def release_control(game_id):
    return _respond(lease.release(game_id, current_user))


@games.route('/<int:game_id>/call', methods=['POST'])
def call_next_number(game_id):
    if _debounced('call', game_id):
        return jsonify({'message': 'debounced'}), 202
    return _respond(calls.call_next(game_id, current_user))


@games.route('/<int:game_id>/void', methods=['POST'])
def void_last_number(game_id):
    return _respond(calls.void_last_number(game_id, current_user))


@games.route('/<int:game_id>/break', methods=['POST'])
def toggle_break(game_id):
    data = request.get_json(silent=True) or {}
    on_break = data.get('on_break')
    if not isinstance(on_break, bool):
        return _bad_request('on_break must be true or false')
    return _respond(calls.toggle_break(game_id, current_user, on_break))


@games.route('/<int:game_id>/pause', methods=['POST'])
def pause_for_validation(game_id):
    return _respond(stages.pause_for_validation(game_id, current_user))


@games.route('/<int:game_id>/resume', methods=['POST'])
def resume_game(game_id):
    return _respond(stages.resume_game(game_id, current_user))


@games.route('/<int:game_id>/validate', methods=['POST'])
def validate_claim(game_id):
    data = request.get_json(silent=True) or {}
    claimed = data.get('claimed_numbers')
    if not isinstance(claimed, list):
        return _bad_request('claimed_numbers must be a list of numbers')
    try:
        claimed = [int(n) for n in claimed]
    except (TypeError, ValueError):
        return _bad_request('claimed_numbers must be a list of numbers')
    return _respond(claims.validate_claim(game_id, current_user, claimed))


@games.route('/<int:game_id>/announce', methods=['POST'])
def announce_win(game_id):
    data = request.get_json(silent=True) or {}
    stage = data.get('stage')
    if not isinstance(stage, str) or not stage:
        return _bad_request('stage is required')
    return _respond(stages.announce_win(game_id, current_user, stage))


@games.route('/<int:game_id>/winners', methods=['POST'])
def record_winner(game_id):
    # Any jackpot flag in the payload is ignored; the server decides
    data = request.get_json(silent=True) or {}
    stage = data.get('stage')
    winner_name = data.get('winner_name')
    if not all([stage, winner_name]):
        return _bad_request('Stage and winner name are required')
    if not isinstance(stage, str) or not isinstance(winner_name, str):
        return _bad_request('Stage and winner name must be text')
    prize_description = data.get('prize_description')
    if prize_description is not None and not isinstance(prize_description, str):
        return _bad_request('prize_description must be text')
    prize_given = data.get('prize_given', False)
    if not isinstance(prize_given, bool):
        return _bad_request('prize_given must be true or false')
    try:
        call_count_at_win = _optional_int(data, 'call_count_at_win')
    except (TypeError, ValueError):
        return _bad_request('call_count_at_win must be a whole number')
    return _respond(stages.record_winner(
        game_id,
        current_user,
        stage,
        winner_name,
        prize_description=prize_description,
        call_count_at_win=call_count_at_win,
        prize_given=prize_given,
    ))


@games.route('/<int:game_id>/winners/<int:winner_id>/prize-given', methods=['POST'])
def toggle_prize_given(game_id, winner_id):
    data = request.get_json(silent=True) or {}
    prize_given = data.get('prize_given')
    if not isinstance(prize_given, bool):
        return _bad_request('prize_given must be true or false')
    return _respond(stages.toggle_prize_given(game_id, current_user, winner_id, prize_given))


@games.route('/<int:game_id>/winners/<int:winner_id>', methods=['DELETE'])
def delete_winner(game_id, winner_id):
    return _respond(stages.delete_winner(game_id, current_user, winner_id))


@games.route('/<int:game_id>/advance', methods=['POST'])
def advance_stage(game_id):
    return _respond(stages.advance_to_next_stage(game_id, current_user))


@games.route('/<int:game_id>/skip', methods=['POST'])
def skip_stage(game_id):
    data = request.get_json(silent=True) or {}
    try:
        current_index = _optional_int(data, 'current_index')
        total_stages = _optional_int(data, 'total_stages')
    except (TypeError, ValueError):
        return _bad_request('current_index and total_stages must be whole numbers')
    return _respond(stages.skip_stage(game_id, current_user, current_index, total_stages))


@games.route('/<int:game_id>/end', methods=['POST'])
def end_game(game_id):
    return _respond(stages.end_game(game_id, current_user))


@games.route('/<int:game_id>/reset', methods=['POST'])
def reset_game(game_id):
    return _respond(stages.reset_game(game_id, current_user))

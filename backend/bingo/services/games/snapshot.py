from flask import current_app

from bingo import db
from bingo.models import Game, Winner
from .actions import core_action, load_state
from .errors import GameNotFound


@core_action('snapshot', roles=None, notify=False)
def get_snapshot(game_id, caller=None):
    """Everything a host, display or player screen renders from.

    Viewers re-read this after every ``state_update`` instead of applying
    deltas.
    """
    game = db.session.get(Game, game_id)
    if game is None:
        raise GameNotFound(game_id)
    state = load_state(game_id, for_update=False)
    stages = game.stage_sequence
    payload = game.to_dict()
    payload['state'] = state.to_dict()
    payload['current_stage'] = stages[state.current_stage_index] if stages else None
    payload['winners'] = [w.to_dict() for w in game.winners.order_by(Winner.id).all()]
    payload['snowball_pot'] = game.snowball_pot.to_dict() if game.snowball_pot else None
    payload['heartbeat_interval_sec'] = int(current_app.config.get('CONTROLLER_HEARTBEAT_SEC', 10))
    return payload

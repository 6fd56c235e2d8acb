from flask import current_app

from bingo import socketio


def game_room(game_id) -> str:
    return f"game:{game_id}"


def notify_state_changed(game_id) -> None:
    """Tell viewers of a game to re-fetch its snapshot.

    The payload only names the game; receivers always reload the full state,
    so duplicate or out-of-order notifications are harmless.
    """
    try:
        socketio.emit('state_update', {'game_id': game_id}, to=game_room(game_id), namespace='/ws')
    except Exception as exc:
        # The write is already committed; a missed push is recovered by the next one
        current_app.logger.warning(f"[notify] game={game_id} state_update emit failed: {exc}")

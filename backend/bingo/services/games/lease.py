"""Controller lease: at most one host may change a game at a time.

The lease lives on the game's state row (holder id plus last-seen time). The
controlling client renews it with a heartbeat; nothing on the server expires
it. A different host can only take over through ``try_acquire`` once the
holder has been silent for the lease timeout, and every mutating operation
re-checks the holder through ``require_controller``.
"""
from datetime import timedelta

from flask import current_app

from .actions import core_action, load_state, resolve_now
from .errors import LeaseHeldByOther, NotController


def lease_timeout() -> timedelta:
    return timedelta(seconds=int(current_app.config.get('CONTROLLER_LEASE_TIMEOUT_SEC', 30)))


def seconds_since_seen(state, now):
    if state.controller_last_seen_at is None:
        return None
    return (now - state.controller_last_seen_at).total_seconds()


def is_lease_stale(state, now) -> bool:
    if state.controlling_host_id is None or state.controller_last_seen_at is None:
        return True
    return now - state.controller_last_seen_at >= lease_timeout()


def acquire_lease(state, host_id, now) -> None:
    """Give the lease to ``host_id`` unless another live holder has it."""
    holder = state.controlling_host_id
    if holder is not None and holder != host_id and not is_lease_stale(state, now):
        raise LeaseHeldByOther(holder)
    if holder is not None and holder != host_id:
        current_app.logger.info(
            f"[lease-takeover] game={state.game_id} from={holder} to={host_id} "
            f"silent_for={seconds_since_seen(state, now)}s"
        )
    state.controlling_host_id = host_id
    state.controller_last_seen_at = now


def require_controller(game_id, host_id, for_update=True):
    """Load the game's state and fail closed unless ``host_id`` holds the lease.

    A timed-out lease still belongs to its holder here; only ``try_acquire``
    transfers control.
    """
    state = load_state(game_id, for_update=for_update)
    if state.controlling_host_id is None or state.controlling_host_id != host_id:
        raise NotController()
    return state


def lease_to_dict(state, host_id, now):
    return {
        'controlling_host_id': state.controlling_host_id,
        'is_controller': state.controlling_host_id is not None and state.controlling_host_id == host_id,
        'is_stale': is_lease_stale(state, now),
        'seconds_since_seen': seconds_since_seen(state, now),
        'heartbeat_interval_sec': int(current_app.config.get('CONTROLLER_HEARTBEAT_SEC', 10)),
        'lease_timeout_sec': int(lease_timeout().total_seconds()),
    }


@core_action('take-control')
def try_acquire(game_id, caller, now=None):
    now = resolve_now(now)
    state = load_state(game_id)
    acquire_lease(state, caller.id, now)
    current_app.logger.info(f"[take-control] game={game_id} host={caller.id}")
    return lease_to_dict(state, caller.id, now)


@core_action('heartbeat', notify=False)
def renew(game_id, caller, now=None):
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    state.controller_last_seen_at = now
    return lease_to_dict(state, caller.id, now)


@core_action('release')
def release(game_id, caller, now=None):
    now = resolve_now(now)
    state = require_controller(game_id, caller.id)
    state.controlling_host_id = None
    state.controller_last_seen_at = None
    current_app.logger.info(f"[release] game={game_id} host={caller.id}")
    return lease_to_dict(state, caller.id, now)


@core_action('lease-status', notify=False)
def lease_status(game_id, caller, now=None):
    now = resolve_now(now)
    state = load_state(game_id, for_update=False)
    return lease_to_dict(state, caller.id, now)

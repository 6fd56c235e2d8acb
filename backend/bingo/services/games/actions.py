"""Operation boundary shared by every game service.

``core_action`` wraps a service function so that it

- checks the caller's role before any state is read,
- commits on success and rolls back on any failure,
- turns ``BingoError``, SQLAlchemy failures and anything unexpected into a
  failed ``ActionResult``,
- emits the ``state_update`` notification after a successful write.
"""
from functools import wraps

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from bingo import db
from bingo.models import GameState, utcnow
from .errors import BingoError, GameNotFound, InternalError, StoreError, Unauthorized
from .notify import notify_state_changed

HOST_ROLES = ('admin', 'host')
ADMIN_ONLY = ('admin',)


class ActionResult:
    """Structured outcome of a core operation: a success flag plus data or an error."""

    def __init__(self, success, data=None, error=None, code=None, status_code=200):
        self.success = success
        self.data = data
        self.error = error
        self.code = code
        self.status_code = status_code

    @classmethod
    def ok(cls, data=None):
        return cls(True, data=data)

    @classmethod
    def failure(cls, exc: BingoError):
        return cls(False, error=str(exc), code=exc.code, status_code=exc.status_code)

    def to_dict(self):
        if self.success:
            return {'success': True, 'data': self.data}
        return {'success': False, 'error': self.error, 'code': self.code}

    def __repr__(self):
        if self.success:
            return f"<ActionResult ok data={self.data!r}>"
        return f"<ActionResult failed code={self.code} error={self.error!r}>"


def caller_id(caller):
    return getattr(caller, 'id', None)


def authorize(caller, roles) -> None:
    if caller is None or not getattr(caller, 'is_authenticated', False):
        raise Unauthorized('Not authenticated.')
    if getattr(caller, 'role', None) not in roles:
        raise Unauthorized()


def load_state(game_id, for_update=True) -> GameState:
    """Read the game's state row, locking it for the rest of the transaction."""
    query = GameState.query.filter_by(game_id=game_id)
    if for_update:
        query = query.with_for_update(nowait=False)
    state = query.first()
    if state is None:
        raise GameNotFound(game_id)
    return state


def resolve_now(now=None):
    return now or utcnow()


def core_action(tag, roles=HOST_ROLES, subject='game', notify=True):
    """Decorate ``func(subject_id, caller, ...)`` as a core operation returning ``ActionResult``.

    ``roles=None`` skips the role check (public reads). ``notify`` only applies
    to game subjects.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(subject_id, caller, *args, **kwargs):
            try:
                if roles:
                    authorize(caller, roles)
                data = func(subject_id, caller, *args, **kwargs)
                db.session.commit()
            except BingoError as exc:
                db.session.rollback()
                current_app.logger.info(
                    f"[{tag}] {subject}={subject_id} caller={caller_id(caller)} rejected {exc.code}: {exc}"
                )
                return ActionResult.failure(exc)
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.error(f"[{tag}] {subject}={subject_id} store failure: {exc}", exc_info=True)
                return ActionResult.failure(StoreError())
            except Exception as exc:
                db.session.rollback()
                current_app.logger.error(f"[{tag}] {subject}={subject_id} unexpected failure: {exc}", exc_info=True)
                return ActionResult.failure(InternalError())

            if notify and subject == 'game':
                notify_state_changed(subject_id)
            return ActionResult.ok(data)
        return wrapper
    return decorator

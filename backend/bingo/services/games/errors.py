"""Domain errors for the game core.

Raised inside the services and turned into an ``ActionResult`` at the
operation boundary (see ``actions.core_action``), so request handlers never
have to catch them. ``code`` is what clients switch on; ``status_code`` is the
HTTP status the API layer answers with.
"""


class BingoError(Exception):
    """Base class for every rejected game operation."""
    code = 'BingoError'
    status_code = 400
    default_message = 'Operation not allowed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


# ============ Caller / lease ============

class Unauthorized(BingoError):
    """Missing login or a role other than admin/host."""
    code = 'Unauthorized'
    status_code = 403
    default_message = 'Unauthorized: Host or Admin access required.'


class NotController(BingoError):
    """Caller does not hold the controller lease for this game."""
    code = 'NotController'
    status_code = 409
    default_message = 'You are not controlling this game. Take control to continue.'


class LeaseHeldByOther(BingoError):
    """Another host holds a lease that has not timed out yet."""
    code = 'LeaseHeldByOther'
    status_code = 409
    default_message = 'Another host is currently controlling this game.'

    def __init__(self, holder_id=None):
        self.holder_id = holder_id
        super().__init__()


# ============ Game state ============

class GameNotFound(BingoError):
    code = 'GameNotFound'
    status_code = 404

    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found.")


class GameNotInProgress(BingoError):
    code = 'GameNotInProgress'
    default_message = 'Game is not in progress.'


class GameInProgress(BingoError):
    """Operation is only allowed while the game is not running."""
    code = 'GameInProgress'
    default_message = 'Game is currently in progress.'


class GameNotCallable(BingoError):
    """Calling is blocked: not in progress, on a break, or paused for a claim."""
    code = 'GameNotCallable'
    default_message = 'Numbers cannot be called right now.'


class NoMoreNumbers(BingoError):
    code = 'NoMoreNumbers'
    default_message = 'No more numbers to call.'


class WinnerExistsAtCall(BingoError):
    code = 'WinnerExistsAtCall'
    default_message = ('Cannot undo: A winner was recorded on this number. '
                       'Please delete the winner record first.')


class NothingToVoid(BingoError):
    code = 'NothingToVoid'
    default_message = 'No numbers have been called to void.'


# ============ Stages / winners ============

class InvalidStage(BingoError):
    code = 'InvalidStage'
    default_message = 'Unknown or unavailable stage.'


class StaleStageIndex(BingoError):
    """The client acted on a stage index that no longer matches the record."""
    code = 'StaleStageIndex'
    status_code = 409
    default_message = 'Game state has changed. Refresh and try again.'


class InvalidWinner(BingoError):
    code = 'InvalidWinner'
    default_message = 'Invalid winner record.'


# ============ Snowball pots ============

class PotNotFound(BingoError):
    code = 'PotNotFound'
    status_code = 404

    def __init__(self, pot_id):
        self.pot_id = pot_id
        super().__init__(f"Snowball pot {pot_id} not found.")


class PotInUse(BingoError):
    code = 'PotInUse'
    status_code = 409
    default_message = 'Snowball pot is in use by a game in progress.'


# ============ Store ============

class StoreError(BingoError):
    """Opaque wrapper for persistence failures; details go to the log only."""
    code = 'StoreError'
    status_code = 500
    default_message = 'Could not save game state. Please try again.'


class InternalError(BingoError):
    """Any unexpected failure inside an operation; details go to the log only."""
    code = 'InternalError'
    status_code = 500
    default_message = 'Something went wrong. Please try again.'

from bingo import db
from bingo.models import GameState
from bingo.services.games import calls, claims, stages
from bingo.services.games.claims import find_invalid_numbers
from conftest import T0


def _called(game_id):
    db.session.expire_all()
    return GameState.query.filter_by(game_id=game_id).first().called_numbers


def test_find_invalid_numbers_keeps_claim_order_without_repeats():
    assert find_invalid_numbers([5, 90, 7, 90, 1], [1, 5, 6]) == [90, 7]
    assert find_invalid_numbers([], [1, 2]) == []


def test_claim_of_called_numbers_is_valid(started_game, users):
    alice = users['alice']
    for _ in range(5):
        calls.call_next(started_game, alice, now=T0)
    stages.pause_for_validation(started_game, alice)
    called = _called(started_game)

    result = claims.validate_claim(started_game, alice, list(called))
    assert result.success
    assert result.data == {'valid': True}


def test_claim_with_uncalled_number_is_invalid(started_game, users):
    alice = users['alice']
    for _ in range(5):
        calls.call_next(started_game, alice, now=T0)
    stages.pause_for_validation(started_game, alice)
    called = _called(started_game)
    uncalled = next(n for n in range(1, 91) if n not in called)

    result = claims.validate_claim(started_game, alice, list(called) + [uncalled])
    assert result.success
    assert result.data == {'valid': False, 'invalid_numbers': [uncalled]}


def test_validation_does_not_touch_state(started_game, users):
    alice = users['alice']
    for _ in range(3):
        calls.call_next(started_game, alice, now=T0)
    stages.pause_for_validation(started_game, alice)
    before = GameState.query.filter_by(game_id=started_game).first().to_dict()

    for claim in ([1, 2, 3], [], list(range(1, 91))):
        assert claims.validate_claim(started_game, alice, claim).success

    db.session.expire_all()
    after = GameState.query.filter_by(game_id=started_game).first().to_dict()
    assert after == before


def test_validation_requires_controller(started_game, users):
    result = claims.validate_claim(started_game, users['bob'], [1])
    assert result.code == 'NotController'

from flask import Blueprint, jsonify
from flask_login import current_user

from bingo.services.games import pots as pot_ledger

pots = Blueprint('pots', __name__)


def _respond(result):
    return jsonify(result.to_dict()), result.status_code


@pots.route('/<int:pot_id>', methods=['GET'])
def get_pot(pot_id):
    return _respond(pot_ledger.get_pot(pot_id, current_user))


@pots.route('/<int:pot_id>/history', methods=['GET'])
def get_pot_history(pot_id):
    return _respond(pot_ledger.pot_history(pot_id, current_user))


@pots.route('/<int:pot_id>/in-use', methods=['GET'])
def get_pot_in_use(pot_id):
    return _respond(pot_ledger.pot_in_use(pot_id, current_user))


@pots.route('/<int:pot_id>/reset', methods=['POST'])
def reset_pot(pot_id):
    return _respond(pot_ledger.reset_pot(pot_id, current_user))


@pots.route('/<int:pot_id>', methods=['DELETE'])
def delete_pot(pot_id):
    return _respond(pot_ledger.delete_pot(pot_id, current_user))

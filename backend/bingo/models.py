from bingo import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json

USER_ROLES = ('admin', 'host')
GAME_TYPES = ('standard', 'snowball')
GAME_STATUSES = ('not_started', 'in_progress', 'completed')
WIN_STAGES = ('Line', 'Two Lines', 'Full House')


def utcnow():
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def sort_stages(stages):
    return sorted(stages, key=WIN_STAGES.index)


def default_stage_sequence(game_type):
    if game_type == 'snowball':
        return ['Full House']
    return list(WIN_STAGES)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=True)  # admin, host; anything else has no game access

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
        }


class BingoSession(db.Model):
    """An evening of games. Test sessions never touch real snowball pots."""
    __tablename__ = 'bingo_session'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(16), default='draft', nullable=False)  # draft, ready, running, completed
    is_test_session = db.Column(db.Boolean, default=False, nullable=False)
    active_game_id = db.Column(db.Integer, db.ForeignKey('game.id', name='fk_session_active_game_id', use_alter=True), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    games = db.relationship('Game', back_populates='session', foreign_keys='Game.session_id')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'is_test_session': self.is_test_session,
            'active_game_id': self.active_game_id,
        }


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('bingo_session.id'), nullable=False)
    game_index = db.Column(db.Integer, nullable=False, default=1)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(16), default='standard', nullable=False)  # standard, snowball
    stage_sequence_json = db.Column('stage_sequence', db.Text, nullable=False)  # JSON-encoded list of stages
    prizes_json = db.Column('prizes', db.Text, nullable=True)  # JSON-encoded {stage: description}
    snowball_pot_id = db.Column(db.Integer, db.ForeignKey('snowball_pot.id'), nullable=True)

    session = db.relationship('BingoSession', back_populates='games', foreign_keys=[session_id])
    snowball_pot = db.relationship('SnowballPot')
    state = db.relationship('GameState', back_populates='game', uselist=False, cascade='all, delete-orphan')
    winners = db.relationship('Winner', back_populates='game', lazy='dynamic', cascade='all, delete-orphan')

    def __init__(self, stage_sequence=None, prizes=None, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.type:
            self.type = 'standard'
        self.stage_sequence = sort_stages(stage_sequence) if stage_sequence else default_stage_sequence(self.type)
        self.prizes = prizes or {}
        if self.state is None:
            self.state = GameState(status='not_started')

    @property
    def stage_sequence(self):
        return json.loads(self.stage_sequence_json) if self.stage_sequence_json else []

    @stage_sequence.setter
    def stage_sequence(self, stages):
        self.stage_sequence_json = json.dumps(list(stages))

    @property
    def prizes(self):
        return json.loads(self.prizes_json) if self.prizes_json else {}

    @prizes.setter
    def prizes(self, value):
        self.prizes_json = json.dumps(value or {})

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'game_index': self.game_index,
            'name': self.name,
            'type': self.type,
            'stage_sequence': self.stage_sequence,
            'prizes': self.prizes,
            'snowball_pot_id': self.snowball_pot_id,
        }


class GameState(db.Model):
    """The single authoritative, per-game record every operation reads and writes."""
    __tablename__ = 'game_state'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), unique=True, nullable=False)
    number_sequence_json = db.Column('number_sequence', db.Text, nullable=True)  # JSON-encoded list, None until started
    called_numbers_json = db.Column('called_numbers', db.Text, nullable=False, default='[]')
    numbers_called_count = db.Column(db.Integer, nullable=False, default=0)
    current_stage_index = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default='not_started')  # not_started, in_progress, completed
    call_delay_seconds = db.Column(db.Integer, nullable=False, default=3)
    on_break = db.Column(db.Boolean, nullable=False, default=False)
    paused_for_validation = db.Column(db.Boolean, nullable=False, default=False)
    display_win_type = db.Column(db.String(32), nullable=True)  # line, two_lines, full_house, snowball
    display_win_text = db.Column(db.String(64), nullable=True)
    display_winner_name = db.Column(db.String(128), nullable=True)
    controlling_host_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    controller_last_seen_at = db.Column(db.DateTime, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    ended_at = db.Column(db.DateTime, nullable=True)
    last_call_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    game = db.relationship('Game', back_populates='state')

    @property
    def number_sequence(self):
        return json.loads(self.number_sequence_json) if self.number_sequence_json else None

    @number_sequence.setter
    def number_sequence(self, numbers):
        self.number_sequence_json = json.dumps(list(numbers)) if numbers is not None else None

    @property
    def called_numbers(self):
        return json.loads(self.called_numbers_json) if self.called_numbers_json else []

    @called_numbers.setter
    def called_numbers(self, numbers):
        self.called_numbers_json = json.dumps(list(numbers))

    def clear_win_display(self):
        self.display_win_type = None
        self.display_win_text = None
        self.display_winner_name = None

    def to_dict(self):
        return {
            'game_id': self.game_id,
            'number_sequence': self.number_sequence,
            'called_numbers': self.called_numbers,
            'numbers_called_count': self.numbers_called_count,
            'current_stage_index': self.current_stage_index,
            'status': self.status,
            'call_delay_seconds': self.call_delay_seconds,
            'on_break': self.on_break,
            'paused_for_validation': self.paused_for_validation,
            'display_win_type': self.display_win_type,
            'display_win_text': self.display_win_text,
            'display_winner_name': self.display_winner_name,
            'controlling_host_id': self.controlling_host_id,
            'controller_last_seen_at': _iso(self.controller_last_seen_at),
            'started_at': _iso(self.started_at),
            'ended_at': _iso(self.ended_at),
            'last_call_at': _iso(self.last_call_at),
        }


class Winner(db.Model):
    __tablename__ = 'winner'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('bingo_session.id'), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    stage = db.Column(db.String(16), nullable=False)
    winner_name = db.Column(db.String(128), nullable=False)
    prize_description = db.Column(db.String(256), nullable=True)
    prize_given = db.Column(db.Boolean, nullable=False, default=False)
    call_count_at_win = db.Column(db.Integer, nullable=False)
    is_jackpot = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    game = db.relationship('Game', back_populates='winners')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'stage': self.stage,
            'winner_name': self.winner_name,
            'prize_description': self.prize_description,
            'prize_given': self.prize_given,
            'call_count_at_win': self.call_count_at_win,
            'is_jackpot': self.is_jackpot,
            'created_at': _iso(self.created_at),
        }


class SnowballPot(db.Model):
    __tablename__ = 'snowball_pot'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    base_max_calls = db.Column(db.Integer, nullable=False)
    base_jackpot_amount = db.Column(db.Numeric(10, 2), nullable=False)
    calls_increment = db.Column(db.Integer, nullable=False, default=0)
    jackpot_increment = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    current_max_calls = db.Column(db.Integer, nullable=False)
    current_jackpot_amount = db.Column(db.Numeric(10, 2), nullable=False)
    last_awarded_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    history = db.relationship('SnowballPotHistory', back_populates='pot', lazy='dynamic',
                              cascade='all, delete-orphan', order_by='SnowballPotHistory.id')

    def __init__(self, **kwargs):
        super(SnowballPot, self).__init__(**kwargs)
        # A new pot starts at its base values unless told otherwise
        if self.current_max_calls is None:
            self.current_max_calls = self.base_max_calls
        if self.current_jackpot_amount is None:
            self.current_jackpot_amount = self.base_jackpot_amount

    def is_at_base(self):
        return (self.current_max_calls <= self.base_max_calls
                and self.current_jackpot_amount <= self.base_jackpot_amount)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'base_max_calls': self.base_max_calls,
            'base_jackpot_amount': float(self.base_jackpot_amount),
            'calls_increment': self.calls_increment,
            'jackpot_increment': float(self.jackpot_increment),
            'current_max_calls': self.current_max_calls,
            'current_jackpot_amount': float(self.current_jackpot_amount),
            'last_awarded_at': _iso(self.last_awarded_at),
        }


class SnowballPotHistory(db.Model):
    """Append-only audit trail; rows are never updated."""
    __tablename__ = 'snowball_pot_history'
    id = db.Column(db.Integer, primary_key=True)
    snowball_pot_id = db.Column(db.Integer, db.ForeignKey('snowball_pot.id'), nullable=False, index=True)
    change_type = db.Column(db.String(32), nullable=False)  # rollover, jackpot_won, manual_reset
    old_val_max = db.Column(db.Integer, nullable=True)
    new_val_max = db.Column(db.Integer, nullable=True)
    old_val_jackpot = db.Column(db.Numeric(10, 2), nullable=True)
    new_val_jackpot = db.Column(db.Numeric(10, 2), nullable=True)
    changed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    game_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    pot = db.relationship('SnowballPot', back_populates='history')

    def to_dict(self):
        return {
            'id': self.id,
            'snowball_pot_id': self.snowball_pot_id,
            'change_type': self.change_type,
            'old_val_max': self.old_val_max,
            'new_val_max': self.new_val_max,
            'old_val_jackpot': float(self.old_val_jackpot) if self.old_val_jackpot is not None else None,
            'new_val_jackpot': float(self.new_val_jackpot) if self.new_val_jackpot is not None else None,
            'changed_by': self.changed_by,
            'game_id': self.game_id,
            'created_at': _iso(self.created_at),
        }

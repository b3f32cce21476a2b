"""Arena error types.

Raised by the round services and mapped to JSON errors by the HTTP layer.
"""


class ArenaError(Exception):
    """Base class for all arena errors"""
    pass


# ============ Configuration ============

class ConfigurationError(ArenaError):
    """Invalid configuration; fatal to the caller, never retried"""
    pass


class UnknownGameType(ConfigurationError):
    """Requested game type has no registered strategy"""
    def __init__(self, game_type):
        self.game_type = game_type
        super().__init__(
            f'Unknown game type: {game_type}. Register it in arena/services/rounds/registry.py'
        )


class InvalidSettings(ConfigurationError):
    """Round settings failed validation at startup"""
    pass


class InvalidTrigger(ConfigurationError):
    """Trick trigger is not one of time/score/deaths/interval"""
    pass


# ============ Round lifecycle ============

class RoundAlreadyActive(ArenaError):
    """A round is still running in the world"""
    def __init__(self, round_id):
        self.round_id = round_id
        super().__init__(f'Round {round_id} is still active')


class RoundNotFound(ArenaError):
    """No round has been started yet"""
    pass


class NotEnoughPlayers(ArenaError):
    """Fewer non-spectating players than the game type requires"""
    def __init__(self, game_type, required, present):
        self.game_type = game_type
        self.required = required
        self.present = present
        super().__init__(
            f'{game_type} needs at least {required} players, got {present}'
        )

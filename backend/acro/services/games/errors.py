class GameActionError(Exception):
    """A player or host action was rejected; the message is shown to the caller."""
    status_code = 422

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PermissionDenied(GameActionError):
    status_code = 403


class GameFullError(GameActionError):
    pass


class ActiveRoundConflict(RuntimeError):
    """More than one answering/voting round exists for a game."""

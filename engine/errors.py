"""
Failures an engine session can end with.

Every failure the adapter produces is an EngineError whose str() is a
human-readable message suitable for showing to the end user. The web layer
maps the whole family to a single HTTP status; callers that care about the
cause can catch the subclasses. Nothing here is retried automatically.
"""


class EngineError(Exception):
    """Base class for every engine adapter failure."""


class EngineNotInstalled(EngineError):
    """The engine binary does not exist. Raised before any process starts."""


class EngineLaunchError(EngineError):
    """The operating system refused to start the engine process."""


class EngineStreamError(EngineError):
    """
    The engine misbehaved on its pipes.

    Covers output on stderr, stdout closing before a bestmove line, and a
    broken stdin pipe while sending a command.
    """


class EngineTimeout(EngineError):
    """No bestmove line arrived before the session deadline."""


class IllegalEngineMove(EngineError):
    """The rules library rejected the move the engine chose."""

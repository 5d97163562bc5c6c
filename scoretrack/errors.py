# scoretrack/errors.py
class ScoretrackError(Exception):
    """Base class for every error raised by scoretrack."""


class NotFoundError(ScoretrackError, FileNotFoundError):
    """An expected file (score, corpus entry, snapshot, index) is absent."""


class ParseError(ScoretrackError, ValueError):
    """A file or cell exists but cannot be decoded."""


class InvalidArgumentError(ScoretrackError, ValueError):
    """Caller supplied a malformed argument, e.g. a bad ISO date."""


class EngineError(ScoretrackError):
    """The performance engine was asked to do something inconsistent."""

"""Exceptions raised by the table engine."""


class InvalidStateError(RuntimeError):
    """An operation was requested that the current session state cannot serve."""


class UnknownPlayerError(KeyError):
    """No player with the given id sits at the table."""

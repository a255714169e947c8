# coding: utf-8
"""
Public subclasses of different Exceptions
"""


class ParsatException(Exception):
    """Base class for parsat exceptions"""


class ConfigurationError(ParsatException):
    """The portfolio cannot be set up as requested (e.g. more workers than seed cubes)."""


class ParseError(ParsatException):
    """Malformed DIMACS input."""


class EngineOutOfMemory(ParsatException):
    """The solving engine ran out of memory."""


class BackendNotAvailable(ParsatException):
    """Raised when the requested engine or channel is missing a dependency."""


class ChannelError(ParsatException):
    """Base class for transport failures between workers."""


class ChannelTimeout(ChannelError):
    """A blocking receive expired before the expected sender delivered."""


class ChannelPayloadError(ChannelError):
    """A received message does not follow the aggregation protocol."""


class WriteError(ParsatException):
    """The result artifact could not be written."""

"""Exception types raised by typo_ime."""


class TypoImeError(Exception):
    """Base class for all typo_ime errors."""


class DataLoadError(TypoImeError):
    """Dictionary or bigram data could not be fetched or parsed."""


class ProtocolError(TypoImeError):
    """A message does not match the wire contract."""


class EngineInitError(TypoImeError):
    """The worker reported init_error."""


class EngineNotReadyError(TypoImeError):
    """A search reached the worker before it finished initializing."""


class SearchFailedError(TypoImeError):
    """The worker could not complete a single search."""


class EngineTerminatedError(TypoImeError):
    """The worker was terminated while a search was pending, or before it was issued."""

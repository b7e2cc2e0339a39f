"""
Exception taxonomy for the nADICO engine.

- InvalidInput: missing or malformed arguments
- ExpressionShapeError: illegal expression shape or type transition
- ConfigurationError: inconsistent engine or range configuration
- MemoryUpdateFailure: non-finite valences reaching the deontic range
- GeneralizationDepthError: higher-order level beyond available social markers
"""


class NAdicoError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidInput(NAdicoError, ValueError):
    """Required input is missing, empty or out of range."""
    pass


class ExpressionShapeError(NAdicoError, ValueError):
    """Expression variant does not permit the requested operation."""
    pass


class ConfigurationError(NAdicoError, ValueError):
    """Engine, range or provider configuration is inconsistent."""
    pass


class MemoryUpdateFailure(NAdicoError, RuntimeError):
    """Deontic range could not be updated from the generalizer state."""
    pass


class GeneralizationDepthError(NAdicoError, ValueError):
    """Requested generalization level exceeds the number of social markers."""
    pass

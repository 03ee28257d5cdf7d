class SprofError(Exception):
    """Base class for errors surfaced to the operator."""


class InputResolutionError(SprofError, ValueError):
    """The program or call graph to analyze could not be loaded."""


class NoEntryPointError(InputResolutionError):
    pass


class ProfileValidationError(SprofError, ValueError):
    """The encoded profile is structurally invalid."""

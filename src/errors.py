"""
Error taxonomy for ARCH.

Errors local to one message or one sample point are absorbed where they
happen (StreamError is recorded on the controller, FormulaEvaluationError is
replaced by 0). Errors that invalidate a whole operation propagate to the
caller as exceptions.
"""


class ArchError(Exception):
    """Base class for all ARCH errors."""


class SessionInitError(ArchError):
    """The collaborator could not be reached or authorized at session creation."""


class StreamError(ArchError):
    """A streaming reply failed mid-sequence. Partial text is kept."""

    def __init__(self, message: str, partial_text: str = "", cause: BaseException | None = None):
        super().__init__(message)
        self.partial_text = partial_text
        self.cause = cause


class CollaboratorError(ArchError):
    """A structured request to the generation collaborator failed."""


class ArtifactGenerationError(ArchError):
    """A simulation config, diagram or summary could not be produced."""


class NoPrimaryVariableError(ArtifactGenerationError):
    """The simulation config declares no independent variables."""


class FormulaEvaluationError(ArchError):
    """An expression is malformed or uses a construct outside the whitelist."""


class ImportParseError(ArchError):
    """A persisted project file is unreadable or misses required fields."""

"""Error types raised across the engine."""


class EngineError(Exception):
    """Base class for engine failures."""


class GenerationError(EngineError):
    """The generative service timed out or kept failing."""


class ContractViolationError(EngineError):
    """The generative service returned output that breaks its contract."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class PersistenceError(EngineError):
    """A read or write against the persistent store failed."""


class ProposalError(EngineError):
    """A confirmation did not match the pending proposal."""


class ToolError(EngineError):
    """A tool was unknown or called with invalid arguments."""

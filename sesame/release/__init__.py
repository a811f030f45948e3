"""Release orchestration: version negotiation, sync, build session, promotion."""

from .errors import (
    AuthError,
    ConflictError,
    GitFailure,
    ManifestError,
    NetworkError,
    OperatorAbort,
    PhaseFailure,
    ReleaseFailure,
)
from .model import BuildOutcome, PublishOptions, ReleaseContext, ReleasePhase

__all__ = [
    "AuthError",
    "BuildOutcome",
    "ConflictError",
    "GitFailure",
    "ManifestError",
    "NetworkError",
    "OperatorAbort",
    "PhaseFailure",
    "PublishOptions",
    "ReleaseContext",
    "ReleaseFailure",
    "ReleasePhase",
]

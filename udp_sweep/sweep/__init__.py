"""Probe dispatch and reply correlation engine."""

from .session import SweepSession, CompletionReason
from .sender import ProbeSender, SenderStats
from .correlator import ReplyCorrelator, CorrelatorStats
from .controller import SweepController, SweepResult

__all__ = [
    "SweepSession",
    "CompletionReason",
    "ProbeSender",
    "SenderStats",
    "ReplyCorrelator",
    "CorrelatorStats",
    "SweepController",
    "SweepResult",
]

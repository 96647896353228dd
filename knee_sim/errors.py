"""Validation errors raised while turning a trial name into signals.

Every error is raised before any time grid or curve is computed, and carries
the offending trial name and field so batch callers can report it.
"""

from __future__ import annotations


class TrialError(ValueError):
    def __init__(self, message: str, *, trial: str | None = None, field: str | None = None):
        self.trial = trial
        self.field = field
        prefix = f'[{trial}] ' if trial else ''
        super().__init__(f'{prefix}{message}')


class MalformedTrialName(TrialError):
    """Trial name does not match the flex_passive_/lax_ grammar."""


class LengthMismatch(MalformedTrialName):
    """DOF codes and magnitudes disagree in count."""


class UnknownDOFCode(TrialError):
    pass


class ChannelCollision(TrialError):
    """Two DOF codes of one trial resolve to the same load channel."""


class InvalidPhasePlan(TrialError):
    pass

"""React-to-unlock gate for video playback."""

from __future__ import annotations

from reaction_api.models.session import GateDecision, SessionPhase, SessionState


def evaluate_gate(state: SessionState) -> GateDecision:
    """Map session state to a gate decision.

    Until the session is READY the gate stays PENDING so that a lock
    overlay is never flashed for a visitor who has already reacted.
    """
    if state.phase is not SessionPhase.READY:
        return GateDecision.PENDING
    if state.has_reacted:
        return GateDecision.OPEN
    return GateDecision.LOCKED


def playback_allowed(state: SessionState) -> bool:
    return evaluate_gate(state) is not GateDecision.LOCKED

"""
Phase transitions from literal marker phrases in the interviewer's replies.

Progression depends on the agent repeating the phrases its system prompt
prescribes. A reply that paraphrases them leaves the phase unchanged.
"""

from __future__ import annotations

from focus_tracker.models.schemas import PHASE_ORDER, InterviewPhase

# Checked in this order: the final output also contains hardening vocabulary.
PHASE_MARKERS: tuple[tuple[InterviewPhase, tuple[str, ...]], ...] = (
    ("complete", ("[חלק 1", "נרטיב אישי", "Vision Board תפעולי")),
    ("hardening", ("פעולה מדידה", "הרגל קבוע", "פעולות מרכזיות")),
    ("clustering", ("זיהיתי כמה תחומים", "תחומים מרכזיים")),
)


def detect_signal(reply: str) -> InterviewPhase | None:
    """Return the most advanced phase whose marker appears in ``reply``."""
    if not reply:
        return None
    for phase, markers in PHASE_MARKERS:
        if any(marker in reply for marker in markers):
            return phase
    return None


def detect_phase(prior: InterviewPhase, reply: str) -> InterviewPhase:
    signal = detect_signal(reply)
    if signal is None:
        return prior
    if PHASE_ORDER.index(signal) <= PHASE_ORDER.index(prior):
        return prior
    return signal

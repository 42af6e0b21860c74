"""Stakeholder perspectives extracted locally from transcripts (no model call)."""

import re

from parley.interview.models import Role
from parley.synthesis.models import StakeholderPerspective, TranscriptSnapshot

_SENTENCE_END = re.compile(r"[.!?]")

MIN_CONCERN_CHARS = 50
MAX_CONCERN_CHARS = 100
MIN_QUOTE_CHARS = 100
MAX_QUOTE_CHARS = 500


def _first_sentence(text: str) -> str:
    sentence = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
    if len(sentence) > MAX_CONCERN_CHARS:
        return sentence[: MAX_CONCERN_CHARS - 3] + "..."
    return sentence


def extract_perspective(snapshot: TranscriptSnapshot) -> StakeholderPerspective:
    messages = [e.text for e in snapshot.transcript if e.role is Role.USER]
    concerns = [_first_sentence(m) for m in messages if len(m) > MIN_CONCERN_CHARS][:3]
    quotes = [m for m in messages if MIN_QUOTE_CHARS < len(m) < MAX_QUOTE_CHARS][:2]
    participant = snapshot.participant
    return StakeholderPerspective(
        name=participant.name,
        role=participant.role,
        title=participant.title,
        key_concerns=concerns,
        notable_quotes=quotes,
    )


def extract_perspectives(snapshots: list[TranscriptSnapshot]) -> list[StakeholderPerspective]:
    return [extract_perspective(s) for s in snapshots]

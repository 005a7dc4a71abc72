from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from tradescreen.schemas.transcript import TranscriptEntry


def count_words(text: str) -> int:
    return len((text or "").split())


class NormalizedTranscript(BaseModel):
    """Finalized utterances split by speaker, in timestamp order."""

    candidate_entries: list[TranscriptEntry] = Field(default_factory=list)
    interviewer_entries: list[TranscriptEntry] = Field(default_factory=list)
    ordered_entries: list[TranscriptEntry] = Field(default_factory=list)

    @property
    def candidate_utterances(self) -> list[str]:
        return [entry.text for entry in self.candidate_entries]

    @property
    def interviewer_utterances(self) -> list[str]:
        return [entry.text for entry in self.interviewer_entries]

    @property
    def response_count(self) -> int:
        return len(self.candidate_entries)

    @property
    def total_words(self) -> int:
        return sum(count_words(text) for text in self.candidate_utterances)

    @property
    def avg_words_per_response(self) -> float:
        if not self.candidate_entries:
            return 0.0
        return self.total_words / self.response_count

    @property
    def avg_response_chars(self) -> float:
        if not self.candidate_entries:
            return 0.0
        return sum(len(text) for text in self.candidate_utterances) / self.response_count

    @property
    def candidate_text(self) -> str:
        return " ".join(text.lower() for text in self.candidate_utterances)

    @property
    def has_candidate_responses(self) -> bool:
        # Blank finals are kept for the statistics but do not count as the candidate speaking.
        return any(text.strip() for text in self.candidate_utterances)


def normalize_transcript(entries: Iterable[TranscriptEntry]) -> NormalizedTranscript:
    finals = [entry for entry in entries if entry.is_final]
    ordered = sorted(finals, key=lambda entry: entry.timestamp)
    return NormalizedTranscript(
        candidate_entries=[entry for entry in ordered if entry.role == "candidate"],
        interviewer_entries=[entry for entry in ordered if entry.role == "interviewer"],
        ordered_entries=ordered,
    )

"""Text alignment engine: split a candidate text into shared and unique segments.

Two strategies are available:

* ``ExactAligner`` runs a character-level Myers diff (diff-match-patch) with
  semantic cleanup and keeps only the candidate side of the edit script.
* ``WordAligner`` ignores order and punctuation and marks every candidate word
  whose normalized form also occurs in the reference.

Both return segments whose texts concatenate back to the candidate verbatim.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Union

from diff_match_patch import diff_match_patch

from campaign_detector.core.logging import LogEvent
from campaign_detector.services.base_service import BaseService, singleton

DEFAULT_MIN_MATCH_CHARS = 1
DEFAULT_DIFF_TIMEOUT = 1.0

_WHITESPACE_SPLIT = re.compile(r"(\s+)")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class Segment:
    """Contiguous span of the candidate text."""

    text: str
    is_match: bool


class AlignmentMode(str, Enum):
    """Available alignment strategies."""

    EXACT = "exact"
    WORDS = "words"


class Aligner(Protocol):
    def align(self, reference: str, candidate: str) -> List[Segment]:
        ...


def normalize_text(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    lowered = _NON_WORD.sub(" ", text.lower())
    return _WHITESPACE_RUN.sub(" ", lowered).strip()


def _unmatched(candidate: str) -> List[Segment]:
    return [Segment(text=candidate, is_match=False)]


def _append(segments: List[Segment], text: str, is_match: bool) -> None:
    """Append a span, merging it into the previous one when the flag agrees."""
    if segments and segments[-1].is_match == is_match:
        segments[-1] = Segment(text=segments[-1].text + text, is_match=is_match)
    else:
        segments.append(Segment(text=text, is_match=is_match))


class ExactAligner:
    """Character diff aligner backed by diff-match-patch."""

    def __init__(
        self,
        min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
        diff_timeout: float = DEFAULT_DIFF_TIMEOUT,
    ):
        self.min_match_chars = max(1, min_match_chars)
        self._dmp = diff_match_patch()
        # 0 disables the deadline and always yields the minimal diff
        self._dmp.Diff_Timeout = max(0.0, diff_timeout)

    def align(self, reference: str, candidate: str) -> List[Segment]:
        reference = reference or ""
        candidate = candidate or ""
        if not reference or not candidate:
            return _unmatched(candidate)

        diffs = self._dmp.diff_main(reference, candidate)
        self._dmp.diff_cleanupSemantic(diffs)

        segments: List[Segment] = []
        for operation, text in diffs:
            # Deleted text lives only in the reference
            if operation == diff_match_patch.DIFF_DELETE or not text:
                continue
            is_match = operation == diff_match_patch.DIFF_EQUAL and self._is_highlightable(text)
            _append(segments, text, is_match)

        return segments or _unmatched(candidate)

    def _is_highlightable(self, text: str) -> bool:
        visible = sum(1 for char in text if not char.isspace())
        return visible >= self.min_match_chars


class WordAligner:
    """Order-insensitive, punctuation-insensitive word matching."""

    def align(self, reference: str, candidate: str) -> List[Segment]:
        reference = reference or ""
        candidate = candidate or ""
        if not reference or not candidate:
            return _unmatched(candidate)

        vocabulary = set(normalize_text(reference).split())

        segments: List[Segment] = []
        for piece in _WHITESPACE_SPLIT.split(candidate):
            if not piece:
                continue
            if piece.isspace():
                segments.append(Segment(text=piece, is_match=False))
                continue
            normalized = normalize_text(piece)
            is_match = bool(normalized) and normalized in vocabulary
            segments.append(Segment(text=piece, is_match=is_match))

        return segments or _unmatched(candidate)


def get_aligner(
    mode: Union[AlignmentMode, str] = AlignmentMode.EXACT,
    min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
    diff_timeout: float = DEFAULT_DIFF_TIMEOUT,
) -> Aligner:
    """Return the aligner implementing ``mode``."""
    mode = AlignmentMode(mode)
    if mode is AlignmentMode.WORDS:
        return WordAligner()
    return ExactAligner(min_match_chars=min_match_chars, diff_timeout=diff_timeout)


def align(
    reference: str,
    candidate: str,
    min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
) -> List[Segment]:
    """Exact alignment of ``candidate`` against ``reference``."""
    return ExactAligner(min_match_chars=min_match_chars).align(reference, candidate)


def align_by_words(reference: str, candidate: str) -> List[Segment]:
    """Loose word-level alignment of ``candidate`` against ``reference``."""
    return WordAligner().align(reference, candidate)


@dataclass(slots=True)
class AlignmentResult:
    """Segments plus coverage statistics for one alignment."""

    segments: List[Segment]
    mode: AlignmentMode
    truncated: bool = False

    @property
    def total_chars(self) -> int:
        return sum(len(segment.text) for segment in self.segments)

    @property
    def matched_chars(self) -> int:
        return sum(len(segment.text) for segment in self.segments if segment.is_match)

    @property
    def coverage(self) -> float:
        total = self.total_chars
        return self.matched_chars / total if total else 0.0


@singleton
class TextAlignmentService(BaseService):
    """Applies configured limits around the alignment engine."""

    def _initialize(self) -> None:
        self.max_chars = self.settings.max_alignment_chars
        self.min_match_chars = self.settings.min_match_chars
        self.diff_timeout = self.settings.diff_timeout_seconds
        self.default_mode = AlignmentMode(self.settings.default_alignment_mode)

    def align(
        self,
        reference: str,
        candidate: str,
        mode: Optional[AlignmentMode] = None,
    ) -> AlignmentResult:
        """
        Align ``candidate`` against ``reference``.

        Inputs longer than ``max_alignment_chars`` are cut before diffing; the
        candidate's cut-off tail is appended as an unmatched segment so the
        segments still rebuild the full candidate.
        """
        self._ensure_initialized()
        mode = AlignmentMode(mode or self.default_mode)
        aligner = get_aligner(mode, min_match_chars=self.min_match_chars, diff_timeout=self.diff_timeout)

        reference = reference or ""
        candidate = candidate or ""
        head, tail = candidate[:self.max_chars], candidate[self.max_chars:]
        truncated = bool(tail) or len(reference) > self.max_chars
        if truncated:
            self.logger.info(
                LogEvent.ALIGNMENT_TRUNCATED,
                reference_length=len(reference),
                candidate_length=len(candidate),
                max_chars=self.max_chars,
            )

        segments = aligner.align(reference[:self.max_chars], head)
        if tail:
            if segments == [Segment(text="", is_match=False)]:
                segments = []
            _append(segments, tail, False)

        result = AlignmentResult(segments=segments, mode=mode, truncated=truncated)
        self.logger.debug(
            LogEvent.ALIGNMENT_COMPUTED,
            mode=mode.value,
            segments=len(segments),
            coverage=round(result.coverage, 4),
        )
        return result

"""Fuzzy matching of statement lines to registered works."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..copyright.models import WorkDetails

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

AKA_THRESHOLD = 0.9
WRITER_THRESHOLD = 0.8


@dataclass(frozen=True)
class SongQuery:
    title: str
    artist: str = ""
    iswc: Optional[str] = None
    gross_amount: Optional[float] = None

    @property
    def key(self) -> str:
        return f"{self.title}-{self.artist}".lower()


@dataclass(frozen=True)
class ConfidenceFactors:
    title_similarity: float
    artist_similarity: float
    iswc_match: bool
    aka_match: bool
    writer_match: bool


@dataclass(frozen=True)
class MatchResult:
    work: WorkDetails
    confidence: float
    factors: ConfidenceFactors
    match_type: str

    @property
    def percent(self) -> int:
        return round(self.confidence * 100)


def normalize_text(text: str) -> str:
    text = _PUNCTUATION_RE.sub("", (text or "").lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def jaro_winkler(s1: str, s2: str) -> float:
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    a, b = s1.lower(), s2.lower()
    window = max(0, max(len(a), len(b)) // 2 - 1)
    a_flags = [False] * len(a)
    b_flags = [False] * len(b)

    matches = 0
    for i, ch in enumerate(a):
        for j in range(max(0, i - window), min(i + window + 1, len(b))):
            if b_flags[j] or b[j] != ch:
                continue
            a_flags[i] = b_flags[j] = True
            matches += 1
            break
    if not matches:
        return 0.0

    transpositions = 0
    k = 0
    for i, ch in enumerate(a):
        if not a_flags[i]:
            continue
        while not b_flags[k]:
            k += 1
        if ch != b[k]:
            transpositions += 1
        k += 1

    jaro = (matches / len(a) + matches / len(b) + (matches - transpositions / 2) / matches) / 3
    prefix = 0
    for x, y in zip(a[:4], b[:4]):
        if x != y:
            break
        prefix += 1
    return jaro + 0.1 * prefix * (1 - jaro)


def confidence_factors(song: SongQuery, work: WorkDetails) -> ConfidenceFactors:
    title = normalize_text(song.title)
    artist = normalize_text(song.artist)
    copyright = work.copyright

    title_similarity = jaro_winkler(title, normalize_text(copyright.work_title))
    aka_match = any(jaro_winkler(title, normalize_text(aka)) > AKA_THRESHOLD for aka in copyright.akas)
    iswc_match = bool(song.iswc and copyright.iswc and song.iswc == copyright.iswc)

    writer_names = [normalize_text(name) for name in work.writer_names]
    scores = [jaro_winkler(artist, name) for name in writer_names]
    artist_similarity = max(scores) if scores else 0.0
    writer_match = any(score > WRITER_THRESHOLD for score in scores)

    return ConfidenceFactors(
        title_similarity=title_similarity,
        artist_similarity=artist_similarity,
        iswc_match=iswc_match,
        aka_match=aka_match,
        writer_match=writer_match,
    )


def confidence_score(factors: ConfidenceFactors) -> float:
    score = factors.title_similarity * 0.4 + factors.artist_similarity * 0.25
    if factors.iswc_match:
        score += 0.2
    if factors.aka_match:
        score += 0.1
    if factors.writer_match:
        score += 0.05
    return min(score, 1.0)


def match_type(confidence: float) -> str:
    if confidence >= 0.95:
        return "exact"
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.6:
        return "medium"
    return "low"


def find_potential_matches(
    song: SongQuery,
    works: Sequence[WorkDetails],
    min_confidence: float = 0.3,
) -> list[MatchResult]:
    results = []
    for work in works:
        factors = confidence_factors(song, work)
        confidence = confidence_score(factors)
        if confidence >= min_confidence:
            results.append(MatchResult(work, confidence, factors, match_type(confidence)))
    results.sort(key=lambda r: r.confidence, reverse=True)
    return results


def best_match(
    song: SongQuery,
    works: Sequence[WorkDetails],
    min_confidence: float = 0.6,
) -> Optional[MatchResult]:
    matches = find_potential_matches(song, works, min_confidence)
    return matches[0] if matches else None


def batch_match(
    songs: Sequence[SongQuery],
    works: Sequence[WorkDetails],
    min_confidence: float = 0.6,
) -> dict[str, Optional[MatchResult]]:
    return {song.key: best_match(song, works, min_confidence) for song in songs}

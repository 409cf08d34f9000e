from decimal import Decimal, ROUND_HALF_UP
from typing import List, Tuple

from jobconnect.models.models import ScoreResult

MIN_SCORE = 1


def split_skills(text: str, required_skills: List[str]) -> Tuple[List[str], List[str]]:
    """Case-insensitive substring match of each required skill against the text"""
    haystack = (text or "").lower()
    matched, missing = [], []
    for skill in required_skills:
        needle = skill.strip().lower()
        if needle and needle in haystack:
            matched.append(skill)
        else:
            missing.append(skill)
    return matched, missing


def coverage_to_score(matched: int, total: int, floor: int = MIN_SCORE) -> int:
    # 0 means "not scored" downstream, so never hand it out
    if total <= 0:
        return floor
    score = int((Decimal(100 * matched) / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(floor, min(100, score))


def heuristic_score(text: str, required_skills: List[str]) -> int:
    matched, _ = split_skills(text, required_skills)
    return coverage_to_score(len(matched), len(required_skills))


def heuristic_result(text: str, required_skills: List[str]) -> ScoreResult:
    matched, missing = split_skills(text, required_skills)
    return ScoreResult(
        score=coverage_to_score(len(matched), len(required_skills)),
        skills_analysis=f"Matched {len(matched)} of {len(required_skills)} required skills by keyword.",
        matched_skills=matched,
        missing_skills=missing,
        source="heuristic",
    )

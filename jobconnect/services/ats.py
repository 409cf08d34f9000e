"""
ATS scoring through the generative-text model, degrading to keyword overlap
"""
import asyncio
import re
from typing import Callable, Dict, List, Optional

from jobconnect.helpers.prompts import ATS_SCORE_PROMPT
from jobconnect.models.models import ScoreResult
from jobconnect.services.fallback import FallbackChain
from jobconnect.services.matching import heuristic_result
from jobconnect.utils.exceptions import ScoringDegraded, retry_with_logging
from jobconnect.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)

SCORE_PATTERN = re.compile(r"Score:\s*(\d+)")

SECTION_LABELS = {
    "skills_analysis": "Skills Analysis",
    "experience_analysis": "Experience Analysis",
    "education_analysis": "Education Analysis",
    "additional_factors": "Additional Factors",
    "matched_skills": "Matched Skills",
    "missing_skills": "Missing Skills",
}
_LABEL_ALTERNATION = "|".join(re.escape(label) for label in ["Score", *SECTION_LABELS.values()])
SECTION_PATTERN = re.compile(
    rf"^\W*({_LABEL_ALTERNATION})\W*:\s*(.*?)(?=^\W*(?:{_LABEL_ALTERNATION})\W*:|\Z)",
    re.MULTILINE | re.DOTALL,
)


def build_ats_prompt(resume_text: str, required_skills: List[str], max_chars: int = 3000) -> str:
    return ATS_SCORE_PROMPT.format(
        skills=", ".join(required_skills),
        resume=resume_text[:max_chars],
    )


def parse_score(text: Optional[str]) -> Optional[int]:
    """Return the integer after the first literal ``Score:``, or None"""
    if not text:
        return None
    match = SCORE_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1))


def _as_list(value: str) -> List[str]:
    value = value.strip().strip("[]")
    if not value or value.lower() in ("none", "n/a", "-"):
        return []
    parts = re.split(r"[,;\n]", value)
    return [p.strip(" -*•\t") for p in parts if p.strip(" -*•\t")]


def parse_analysis(text: str) -> Dict[str, object]:
    """Pull the rationale sections of a model answer into ScoreResult fields"""
    label_to_field = {label.lower(): field for field, label in SECTION_LABELS.items()}
    out: Dict[str, object] = {}
    for label, body in SECTION_PATTERN.findall(text or ""):
        field = label_to_field.get(label.lower())
        if field is None or field in out:
            continue
        body = body.strip()
        out[field] = _as_list(body) if field in ("matched_skills", "missing_skills") else body
    return out


class LLMScorer:
    """Scores a resume with the model; never raises.

    Any failure of the model path (exception, timeout, empty answer, missing
    or out-of-range ``Score:``) yields the heuristic result instead.
    """

    def __init__(
        self,
        generate: Callable[[str], str],
        timeout: float = 30.0,
        max_chars: int = 3000,
        retry_attempts: int = 1,
    ):
        self.generate = generate
        self.timeout = timeout
        self.max_chars = max_chars
        self.retry_attempts = retry_attempts

    async def _ask_model(self, prompt: str) -> str:
        @retry_with_logging(max_attempts=self.retry_attempts, backoff_factor=0.5, logger=logger)
        async def attempt() -> str:
            return await asyncio.wait_for(asyncio.to_thread(self.generate, prompt), timeout=self.timeout)

        with PerformanceMonitor("ats_model_call", logger, threshold_ms=self.timeout * 1000 / 2):
            return await attempt()

    async def _model_score(self, text: str, required_skills: List[str]) -> ScoreResult:
        answer = await self._ask_model(build_ats_prompt(text, required_skills, self.max_chars))
        if not answer or not answer.strip():
            raise ScoringDegraded("Empty response from model", reason="empty")

        score = parse_score(answer)
        if score is None:
            raise ScoringDegraded("No score in model response", reason="unparsable")
        # 0 is reserved for "not attempted"
        if score < 1 or score > 100:
            raise ScoringDegraded(f"Model score {score} out of range", reason="out_of_range")

        return ScoreResult(score=score, source="llm", **parse_analysis(answer))

    async def score(self, text: str, required_skills: List[str]) -> ScoreResult:
        chain = FallbackChain(
            primary=lambda: self._model_score(text, required_skills),
            fallback=lambda: heuristic_result(text, required_skills),
            name="ats_score",
        )
        outcome = await chain.run()
        if outcome.degraded:
            signal = outcome.error if isinstance(outcome.error, ScoringDegraded) else ScoringDegraded(
                "Model scoring failed", reason=outcome.error.__class__.__name__, cause=outcome.error
            )
            logger.warning(
                f"ATS scoring degraded to heuristic: {signal.message}",
                extra={"error": signal.to_dict(), "score": outcome.value.score}
            )
        return outcome.value

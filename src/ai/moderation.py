"""
Content moderation for submitted messages.

The model judges text against five fixed policies. Its answer is turned
into a ModerationResult with one of three verdicts; an INDETERMINATE
verdict (provider error or unparseable output) is blocked exactly like
an UNSAFE one when converted into the decision the submission flow uses.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ai.client import LLMCall, call_llm, parse_json_response

logger = logging.getLogger(__name__)

SAFE_REASON = "Content meets safety guidelines."
INDETERMINATE_REASON = (
    "Content could not be analyzed by the moderation system. Blocked as a precaution."
)
UNSPECIFIED_VIOLATION_REASON = "Content violates the safety guidelines."

# The policies below are the moderation contract, so the provider's own
# filter is switched off to avoid blocking before our verdict is produced.
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]

SYSTEM_INSTRUCTION = """You are an AI content moderation system. Your task is to analyze the provided text and determine if it violates any of our content policies.

Policies:
1. Hate Speech: Content that promotes violence, incites hatred, promotes discrimination, or disparages on the basis of race or ethnic origin, religion, disability, age, nationality, veteran status, sexual orientation, sex, gender, gender identity, caste, immigration status, or any other characteristic that is associated with systemic discrimination or marginalization.
2. Harassment: Content that targets an individual or group with malicious attacks, including bullying, shaming, or sexual harassment.
3. Sexually Explicit Content: Content that contains nudity, graphic sexual acts, or non-consensual sexual content.
4. Dangerous Content: Content that promotes, facilitates, or enables access to harmful activities, such as illegal drugs, weapons, or self-harm.
5. Promotion of Violence: Content that incites or glorifies violence against individuals or groups.

Respond with a single JSON object: {"isSafe": boolean, "reason": string}.
"isSafe" MUST be false if ANY policy is violated. It MUST be true if and only if NO policies are violated.
"reason": if "isSafe" is false, clearly state which policy (or policies) were violated with a brief, specific explanation related to the text. If "isSafe" is true, it MUST be "Content meets safety guidelines."

Critically evaluate the text. If there is any ambiguity or potential for harm according to the policies, you MUST err on the side of caution and set "isSafe" to false."""


class Verdict(str, enum.Enum):
    SAFE = "safe"
    UNSAFE = "unsafe"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class ModerationResult:
    verdict: Verdict
    reason: Optional[str] = None

    def to_decision(self) -> "ModerationDecision":
        if self.verdict is Verdict.SAFE:
            return ModerationDecision(is_safe=True, reason=SAFE_REASON)
        if self.verdict is Verdict.UNSAFE:
            return ModerationDecision(
                is_safe=False, reason=self.reason or UNSPECIFIED_VIOLATION_REASON
            )
        return ModerationDecision(is_safe=False, reason=INDETERMINATE_REASON)


class ModerationDecision(BaseModel):
    is_safe: bool
    reason: str


class _ModelOutput(BaseModel):
    is_safe: bool = Field(alias="isSafe")
    reason: str = ""

    model_config = ConfigDict(populate_by_name=True)


def build_prompt(text: str) -> str:
    return f"Analyze the following text:\nText: {text}"


class ModerationGateway:
    def __init__(self, llm: Optional[LLMCall] = None):
        self._llm = llm or call_llm

    async def classify(self, text: str) -> ModerationResult:
        try:
            raw = await self._llm(
                build_prompt(text),
                system_instruction=SYSTEM_INSTRUCTION,
                safety_settings=SAFETY_SETTINGS,
            )
        except Exception:
            logger.exception("Moderation call failed (text length %s)", len(text))
            return ModerationResult(Verdict.INDETERMINATE)

        if not raw:
            logger.error("Moderation returned no output (text length %s)", len(text))
            return ModerationResult(Verdict.INDETERMINATE)

        try:
            output = _ModelOutput.model_validate(parse_json_response(raw))
        except (ValueError, ValidationError) as e:
            logger.error("Unparseable moderation output: %s", e)
            return ModerationResult(Verdict.INDETERMINATE)

        if output.is_safe:
            return ModerationResult(Verdict.SAFE, SAFE_REASON)
        return ModerationResult(Verdict.UNSAFE, output.reason.strip() or None)

    async def moderate_content(self, text: str) -> ModerationDecision:
        result = await self.classify(text)
        decision = result.to_decision()
        logger.info("Moderation verdict: %s", result.verdict.value)
        return decision

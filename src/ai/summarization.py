import logging
from typing import Optional, Sequence

from ai.client import LLMCall, call_llm, parse_json_response
from config import MAX_MESSAGES_FOR_SUMMARY

logger = logging.getLogger(__name__)

NOTHING_TO_SUMMARIZE = "There are no messages to summarize."
SUMMARY_FAILED = "Could not generate a summary at this time."

SYSTEM_INSTRUCTION = """You are an AI assistant tasked with summarizing a collection of anonymous messages.
Your goal is to provide a concise overview that captures the main themes, sentiments, and any recurring topics mentioned in the messages.
Focus on being informative and neutral in tone. The summary should be a single block of text.
Respond with a single JSON object: {"summary": string}."""


def build_prompt(messages: Sequence[str]) -> str:
    lines = "\n".join(f"- {message}" for message in messages)
    return f"Messages to summarize:\n{lines}\n\nPlease generate a summary based on these messages."


class SummarizationGateway:
    def __init__(self, llm: Optional[LLMCall] = None, max_messages: int = MAX_MESSAGES_FOR_SUMMARY):
        self._llm = llm or call_llm
        self.max_messages = max_messages

    async def summarize_messages(self, messages: Sequence[str]) -> str:
        """Summarize up to max_messages texts.

        Never raises: provider failures come back as SUMMARY_FAILED.
        """
        if not messages:
            return NOTHING_TO_SUMMARIZE

        batch = list(messages[: self.max_messages])
        preamble = ""
        if len(messages) > self.max_messages:
            preamble = (
                f"(Summary based on the first {self.max_messages} of {len(messages)} messages) "
            )

        try:
            raw = await self._llm(build_prompt(batch), system_instruction=SYSTEM_INSTRUCTION)
        except Exception:
            logger.exception("Summarization call failed for %s messages", len(batch))
            return SUMMARY_FAILED

        summary = None
        if raw:
            try:
                summary = parse_json_response(raw).get("summary")
            except ValueError as e:
                logger.error("Unparseable summarization output: %s", e)
        if not isinstance(summary, str) or not summary.strip():
            return SUMMARY_FAILED
        return preamble + summary.strip()

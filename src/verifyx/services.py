"""
Answer generation and proposition splitting on top of the oracle
"""

import logging
from typing import List

from .backoff import BackoffExecutor
from .errors import InvalidInput, TransientOracleFailure
from .oracles import OracleClient, OracleResult
from .promptvault import PromptVault
from .rate_limiter import RateLimiter
from .settings import Settings

logger = logging.getLogger(__name__)

MIN_QUESTION_LENGTH = 5


def _as_text(raw: OracleResult) -> str:
    if isinstance(raw, str):
        return raw.strip()
    return str(raw.get("text") or raw.get("answer") or "").strip()


def parse_proposition_lines(text: str) -> List[str]:
    """Statements listed as ``- item`` lines, in order"""
    propositions = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("- "):
            proposition = line[2:].strip()
            if proposition:
                propositions.append(proposition)
    return propositions


class _OracleService:
    """Shared plumbing: prompt rendering and rate-limited oracle calls"""

    def __init__(self, oracle: OracleClient, rate_limiter: RateLimiter,
                 settings: Settings, prompts: PromptVault, *, sleep=None):
        self.oracle = oracle
        self.rate_limiter = rate_limiter
        self.settings = settings
        self.prompts = prompts
        self._sleep = sleep

    async def _ask(self, prompt: str) -> str:
        executor = BackoffExecutor.from_settings(self.rate_limiter, self.settings, sleep=self._sleep)
        raw = await executor.execute_with_retry(lambda: self.oracle.query(prompt))
        return _as_text(raw)


class PropositionSplitter(_OracleService):
    """Splits an answer into independent, fact-checkable propositions"""

    async def split(self, text: str) -> List[str]:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Answer text is required for splitting")

        response = await self._ask(self.prompts.get_prompt("proposition_split", text=text.strip()))
        propositions = parse_proposition_lines(response)
        if not propositions:
            raise InvalidInput("Cannot extract propositions")

        logger.info(f"Split text into {len(propositions)} proposition(s)")
        return propositions


class AnswerGenerator(_OracleService):
    """Produces a short, child-friendly answer to a question"""

    async def generate(self, question: str) -> str:
        if not isinstance(question, str) or len(question.strip()) < MIN_QUESTION_LENGTH:
            raise InvalidInput(f"Question must be at least {MIN_QUESTION_LENGTH} characters long")

        answer = await self._ask(self.prompts.get_prompt("answer", question=question.strip()))
        if not answer:
            raise TransientOracleFailure("The oracle returned an empty answer")
        logger.info(f"Generated answer ({len(answer)} chars)")
        return answer

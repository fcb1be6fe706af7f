"""
Orchestrator - runs the validator panel over every proposition
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from .backoff import BackoffExecutor
from .errors import ExhaustedRetries, InvalidInput, OracleError, RateLimited
from .models import PropositionPanel, ProgressStep, ValidatorResult, ValidatorSpec
from .monitors import SystemMonitor
from .oracles import OracleClient
from .panel import build_panel
from .progress import ProgressTracker
from .promptvault import PromptVault
from .rate_limiter import RateLimiter
from .settings import Settings
from .verdicts import parse_verdict

logger = logging.getLogger(__name__)


class ValidatorOrchestrator:
    """Fans each proposition out to the validator panel.

    Work units (proposition x validator, in panel order) are processed in
    batches of ``validator_batch_size`` concurrent oracle calls, with
    ``batch_delay`` seconds between batches. A validator that fails for good
    is recorded as a failed vote; it never stops the rest of the panel.
    """

    def __init__(self, oracle: OracleClient, rate_limiter: RateLimiter,
                 tracker: ProgressTracker, settings: Optional[Settings] = None, *,
                 panel: Optional[Sequence[ValidatorSpec]] = None,
                 prompts: Optional[PromptVault] = None,
                 monitor: Optional[SystemMonitor] = None,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        self.oracle = oracle
        self.rate_limiter = rate_limiter
        self.tracker = tracker
        self.settings = settings or Settings()
        self.panel: List[ValidatorSpec] = list(
            panel if panel is not None else build_panel(self.settings.validators_per_category)
        )
        self.prompts = prompts or PromptVault()
        self.monitor = monitor
        self.batch_size = max(1, self.settings.validator_batch_size)
        self.batch_delay = self.settings.batch_delay
        self._sleep = sleep or asyncio.sleep
        self.verification_count = 0
        self.total_processing_time = 0.0

    @property
    def panel_size(self) -> int:
        return len(self.panel)

    def make_executor(self) -> BackoffExecutor:
        """One executor per validator call, all sharing the rate limiter"""
        return BackoffExecutor.from_settings(self.rate_limiter, self.settings, sleep=self._sleep)

    @staticmethod
    def validate_propositions(propositions: Sequence[str]) -> List[str]:
        """Reject empty or malformed submissions"""
        if isinstance(propositions, (str, bytes)) or not propositions:
            raise InvalidInput("A non-empty list of propositions is required")

        texts = []
        for index, proposition in enumerate(propositions, start=1):
            if not isinstance(proposition, str) or not proposition.strip():
                raise InvalidInput(f"Proposition {index} must be a non-empty string")
            texts.append(proposition.strip())
        return texts

    async def verify(self, propositions: Sequence[str], session_id: str) -> List[PropositionPanel]:
        """Evaluate every proposition with the full panel, reporting progress"""
        texts = self.validate_propositions(propositions)
        if not self.panel:
            raise InvalidInput("The validator panel is empty")

        start_time = time.time()
        self.verification_count += 1
        total_units = self.panel_size * len(texts)
        completed_units = 0
        rows: List[List[Optional[ValidatorResult]]] = [[None] * self.panel_size for _ in texts]
        work: List[Tuple[int, int]] = [
            (p_index, v_index)
            for p_index in range(len(texts))
            for v_index in range(self.panel_size)
        ]

        logger.info(
            f"Verifying {len(texts)} proposition(s) with {self.panel_size} validators "
            f"each (session {session_id})"
        )
        self.tracker.update(session_id, ProgressStep.PENDING, 0, 0, total_units,
                            "Verification started")

        async def run_unit(p_index: int, v_index: int):
            nonlocal completed_units
            validator = self.panel[v_index]
            result = await self.run_validator(texts[p_index], v_index + 1, validator)
            rows[p_index][v_index] = result
            completed_units += 1
            self.tracker.update(
                session_id,
                ProgressStep.VERIFYING,
                100 * completed_units / total_units,
                completed_units,
                total_units,
                f"{validator.name} finished proposition {p_index + 1}/{len(texts)}",
            )

        try:
            for batch_start in range(0, len(work), self.batch_size):
                batch = work[batch_start:batch_start + self.batch_size]
                logger.debug(f"Batch {batch_start // self.batch_size + 1}: {len(batch)} validator(s)")
                outcomes = await asyncio.gather(*(run_unit(p, v) for p, v in batch),
                                                return_exceptions=True)
                # The whole batch has settled before the first failure propagates
                errors = [o for o in outcomes if isinstance(o, BaseException)]
                if errors:
                    raise errors[0]

                if batch_start + self.batch_size < len(work) and self.batch_delay > 0:
                    await self._sleep(self.batch_delay)
        except Exception as e:
            logger.error(f"Verification failed for session {session_id}: {e}")
            self.tracker.update(session_id, ProgressStep.ERROR,
                                100 * completed_units / total_units,
                                completed_units, total_units, str(e))
            raise

        panels = [
            PropositionPanel(proposition=text, validators=row)
            for text, row in zip(texts, rows)
        ]
        self.tracker.update(session_id, ProgressStep.COMPLETED, 100, completed_units,
                            total_units, "Verification completed")

        processing_time = time.time() - start_time
        self.total_processing_time += processing_time
        logger.info(f"Session {session_id} verified in {processing_time:.2f}s")
        return panels

    async def run_validator(self, proposition: str, validator_id: int,
                            validator: ValidatorSpec) -> ValidatorResult:
        """One oracle judgment; permanent failures become a failed vote"""
        prompt = self.prompts.validator_prompt(validator, proposition)
        executor = self.make_executor()
        started = time.monotonic()

        async def call_oracle():
            try:
                return await self.oracle.query(prompt)
            except RateLimited:
                if self.monitor is not None:
                    self.monitor.increment("rate_limited")
                raise

        try:
            raw = await executor.execute_with_retry(call_oracle)
            verdict = parse_verdict(raw, self.settings.reasoning_max_chars)
        except (ExhaustedRetries, OracleError) as e:
            response_time = time.monotonic() - started
            logger.warning(f"Validator {validator_id} ({validator.name}) failed: {e}")
            result = self.failed_result(validator_id, validator, f"Validation failed: {e}",
                                        response_time)
        except Exception as e:
            response_time = time.monotonic() - started
            logger.error(f"Validator {validator_id} ({validator.name}) returned an unusable "
                         f"response: {e}")
            result = self.failed_result(validator_id, validator, f"Unusable response: {e}",
                                        response_time)
        else:
            response_time = time.monotonic() - started
            result = ValidatorResult(
                id=validator_id,
                name=validator.name,
                category=validator.category,
                verdict=verdict.verdict,
                confidence=verdict.confidence,
                reasoning=verdict.reasoning,
                succeeded=True,
                response_time=response_time,
            )
            logger.debug(
                f"Validator {validator_id} ({validator.name}): "
                f"{'TRUE' if result.verdict else 'FALSE'} ({result.confidence}%)"
            )

        if self.monitor is not None:
            self.monitor.record_validator(validator.category.value, result.succeeded, response_time)
        return result

    def failed_result(self, validator_id: int, validator: ValidatorSpec, reason: str,
                      response_time: float) -> ValidatorResult:
        return ValidatorResult(
            id=validator_id,
            name=validator.name,
            category=validator.category,
            verdict=False,
            confidence=0,
            reasoning=reason[:self.settings.reasoning_max_chars],
            succeeded=False,
            response_time=response_time,
        )

    def get_stats(self):
        """Orchestrator statistics"""
        return {
            "verification_count": self.verification_count,
            "total_processing_time": self.total_processing_time,
            "average_processing_time": (
                self.total_processing_time / self.verification_count
                if self.verification_count else 0.0
            ),
            "panel_size": self.panel_size,
            "oracle": self.oracle.get_stats(),
        }

"""
Verification Service - wires the oracle, limiter, tracker and aggregator together
"""

import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence

from .consensus import ConsensusAggregator
from .models import PanelReport, PropositionPanel, VerificationReport
from .monitors import SystemMonitor
from .oracles import OracleClient, create_oracle
from .orchestrator import ValidatorOrchestrator
from .progress import ProgressTracker, utc_now
from .promptvault import PromptVault
from .rate_limiter import RateLimiter
from .secure_config import SecureConfig
from .services import AnswerGenerator, PropositionSplitter
from .settings import Settings
from .transparency import ConsensusLedger

logger = logging.getLogger(__name__)


def new_consensus_id() -> str:
    return f"c_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class VerificationService:
    """Owns every component of one running application instance.

    The rate limiter is shared by all oracle traffic (validators, splitting
    and answer generation) so the process never exceeds its quota.
    """

    def __init__(self, settings: Optional[Settings] = None, *,
                 oracle: Optional[OracleClient] = None,
                 secure_config: Optional[SecureConfig] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 tracker: Optional[ProgressTracker] = None,
                 sleep=None):
        self.settings = settings or Settings()
        self.secure_config = secure_config or SecureConfig()
        self.oracle = oracle or create_oracle(
            self.settings, self.secure_config.get_api_key(self.settings.oracle_provider)
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            self.settings.rate_limit_requests, self.settings.rate_limit_window, sleep=sleep
        )
        self.tracker = tracker or ProgressTracker(
            stale_after=self.settings.progress_stale_after,
            cleanup_delay=self.settings.progress_cleanup_delay,
            idle_retention=self.settings.progress_idle_retention,
        )
        self.prompts = PromptVault()
        self.monitor = SystemMonitor()
        self.aggregator = ConsensusAggregator.from_settings(self.settings)
        self.ledger = ConsensusLedger(self.settings.max_reports_in_memory)
        self.orchestrator = ValidatorOrchestrator(
            self.oracle, self.rate_limiter, self.tracker, self.settings,
            prompts=self.prompts, monitor=self.monitor, sleep=sleep,
        )
        self.splitter = PropositionSplitter(
            self.oracle, self.rate_limiter, self.settings, self.prompts, sleep=sleep
        )
        self.answer_generator = AnswerGenerator(
            self.oracle, self.rate_limiter, self.settings, self.prompts, sleep=sleep
        )

    async def initialize(self):
        """Check the oracle once at startup"""
        available = self.secure_config.discover_available_providers()
        logger.info(f"Discovered {len(available)} provider key(s): {available}")

        healthy = await self.oracle.health_check()
        if healthy:
            logger.info(f"Oracle '{self.oracle.name}' ready")
        else:
            logger.warning(f"Oracle '{self.oracle.name}' failed its health check")

    async def verify(self, propositions: Sequence[str], session_id: str) -> VerificationReport:
        """Run the panel over the propositions and record the report"""
        start_time = time.time()
        panels = await self.orchestrator.verify(propositions, session_id)
        report = await self.analyze_panels(panels, session_id=session_id)

        self.monitor.increment("verification_runs")
        self.monitor.record_metric("verification_time", time.time() - start_time)
        return report

    async def analyze_panels(self, panels: Sequence[PropositionPanel],
                             session_id: Optional[str] = None) -> VerificationReport:
        """Consensus over already collected panels"""
        analyses = [self.aggregator.analyze(panel) for panel in panels]
        report = VerificationReport(
            consensus_id=new_consensus_id(),
            session_id=session_id,
            results=[
                PanelReport(proposition=panel.proposition, validators=panel.validators,
                            analysis=analysis)
                for panel, analysis in zip(panels, analyses)
            ],
            summary=self.aggregator.summarize(panels, analyses),
            timestamp=utc_now(),
        )
        await self.ledger.record(report)

        summary = report.summary
        logger.info(
            f"Consensus {report.consensus_id}: {summary.consensus_reached}/"
            f"{summary.total_propositions} reached, quality {summary.answer_quality.overall_score}"
        )
        return report

    async def split(self, text: str) -> List[str]:
        return await self.splitter.split(text)

    async def generate_answer(self, question: str) -> str:
        return await self.answer_generator.generate(question)

    async def get_report(self, consensus_id: str) -> Optional[VerificationReport]:
        return await self.ledger.get(consensus_id)

    async def recent_reports(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Summaries of the latest recorded reports, oldest first"""
        return [
            {
                "consensus_id": report.consensus_id,
                "session_id": report.session_id,
                "timestamp": report.timestamp.isoformat(),
                "total_propositions": report.summary.total_propositions,
                "consensus_reached": report.summary.consensus_reached,
                "overall_score": report.summary.answer_quality.overall_score,
            }
            for report in await self.ledger.history(limit)
        ]

    def get_status(self) -> Dict[str, Any]:
        """Oracle health, configured keys and limiter state"""
        return {
            "oracle": self.oracle.get_stats(),
            "provider": self.settings.oracle_provider if self.settings.use_real_llm else "mock",
            "use_real_llm": self.settings.use_real_llm,
            "configuration": self.secure_config.get_summary(),
            "available_providers": self.secure_config.discover_available_providers(),
            "rate_limiter": self.rate_limiter.get_status(),
            "progress": self.tracker.get_stats(),
            "ledger": self.ledger.get_stats(),
        }

    def get_metrics(self) -> Dict[str, Any]:
        metrics = self.monitor.get_metrics()
        metrics["orchestrator"] = self.orchestrator.get_stats()
        return metrics

    async def cleanup(self):
        """Release live streams and timers"""
        logger.info("Cleaning up verification service...")
        self.tracker.close()
        self.monitor.cleanup()

"""
Consensus Aggregator - majority decisions over validator panels
"""

import math
import logging
from typing import List, Optional, Sequence

from .models import (
    AnswerQuality,
    ConsensusAnalysis,
    ConsensusSummary,
    PropositionPanel,
    Votes,
    round_half_up,
)
from .settings import Settings

logger = logging.getLogger(__name__)

# overallScore = 0.4 * consensus rate + 0.4 * confidence + 0.2 * unanimity rate
QUALITY_WEIGHTS = (0.4, 0.4, 0.2)


class ConsensusAggregator:
    """Pure reduction of panels into majority decisions and a rollup.

    Failed validators are counted separately and never take part in the
    vote or the confidence average. When true and false votes are equal the
    decision falls back to ``tie_break``.
    """

    def __init__(self, tie_break: bool = False, strong_majority_ratio: float = 0.75):
        self.tie_break = tie_break
        self.strong_majority_ratio = strong_majority_ratio

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConsensusAggregator":
        return cls(
            tie_break=settings.tie_break.strip().lower() == "true",
            strong_majority_ratio=settings.strong_majority_ratio,
        )

    def strong_majority_threshold(self, panel_size: int) -> int:
        return math.ceil(self.strong_majority_ratio * panel_size)

    def analyze(self, panel: PropositionPanel) -> ConsensusAnalysis:
        """Majority analysis of a single panel"""
        true_votes = false_votes = failed = 0
        confidences: List[int] = []

        for result in panel.validators:
            if not result.succeeded:
                failed += 1
                continue
            if result.verdict:
                true_votes += 1
            else:
                false_votes += 1
            confidences.append(result.confidence)

        panel_size = panel.panel_size
        valid_votes = true_votes + false_votes
        leading = max(true_votes, false_votes)
        majority_threshold = math.ceil(panel_size / 2)
        consensus_reached = valid_votes > 0 and leading >= majority_threshold
        tie = true_votes == false_votes

        return ConsensusAnalysis(
            votes=Votes(true=true_votes, false=false_votes, failed=failed),
            panel_size=panel_size,
            majority_threshold=majority_threshold,
            consensus_reached=consensus_reached,
            consensus=self.tie_break if tie else true_votes > false_votes,
            tie=tie,
            majority_strength=leading if consensus_reached else 0,
            average_confidence=(
                round_half_up(sum(confidences) / len(confidences)) if confidences else 0
            ),
            unanimity=valid_votes > 0 and leading == valid_votes,
            agreement_level=round_half_up(100 * leading / valid_votes) if valid_votes else 0,
        )

    def summarize(self, panels: Sequence[PropositionPanel],
                  analyses: Optional[Sequence[ConsensusAnalysis]] = None) -> ConsensusSummary:
        """Rollup over every panel of a verification"""
        if analyses is None:
            analyses = [self.analyze(panel) for panel in panels]

        total = len(analyses)
        reached = [a for a in analyses if a.consensus_reached]
        unanimous = sum(1 for a in analyses if a.unanimity)
        strong = sum(
            1 for a in analyses
            if a.consensus_reached
            and a.majority_strength >= self.strong_majority_threshold(a.panel_size)
        )
        average_agreement = average_confidence = 0
        if total:
            average_agreement = round_half_up(sum(a.agreement_level for a in analyses) / total)
            average_confidence = round_half_up(sum(a.average_confidence for a in analyses) / total)

        return ConsensusSummary(
            total_propositions=total,
            consensus_reached=len(reached),
            unanimous_decisions=unanimous,
            strong_consensus=strong,
            true_consensus=sum(1 for a in reached if a.consensus),
            false_consensus=sum(1 for a in reached if not a.consensus),
            no_consensus=total - len(reached),
            average_agreement_level=average_agreement,
            average_confidence=average_confidence,
            answer_quality=self.answer_quality(total, len(reached), unanimous, average_confidence),
        )

    def answer_quality(self, total: int, consensus_reached: int, unanimous: int,
                       average_confidence: int) -> AnswerQuality:
        """Weighted blend of consensus rate, confidence and unanimity rate"""
        if total == 0:
            return AnswerQuality(verifiability=0.0, reliability=0.0, consistency=0.0, overall_score=0)

        verifiability = consensus_reached / total
        reliability = average_confidence / 100
        consistency = unanimous / total
        w_consensus, w_confidence, w_unanimity = QUALITY_WEIGHTS
        overall = (verifiability * w_consensus + reliability * w_confidence
                   + consistency * w_unanimity)
        return AnswerQuality(
            verifiability=round(verifiability, 4),
            reliability=round(reliability, 4),
            consistency=round(consistency, 4),
            overall_score=round_half_up(overall * 100),
        )

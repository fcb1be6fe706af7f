"""
Transparency Module - keeps recent verification reports for later lookup
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from .models import VerificationReport

logger = logging.getLogger(__name__)


class ConsensusLedger:
    """Bounded in-memory record of verification reports, keyed by consensus id"""

    def __init__(self, max_reports: int = 500):
        self.max_reports = max_reports
        self._reports: "OrderedDict[str, VerificationReport]" = OrderedDict()
        self.total_recorded = 0

    async def record(self, report: VerificationReport):
        """Store a report, evicting the oldest beyond capacity"""
        self._reports[report.consensus_id] = report
        self._reports.move_to_end(report.consensus_id)
        self.total_recorded += 1

        while len(self._reports) > self.max_reports:
            evicted, _ = self._reports.popitem(last=False)
            logger.debug(f"Evicted consensus report {evicted}")

    async def get(self, consensus_id: str) -> Optional[VerificationReport]:
        return self._reports.get(consensus_id)

    async def history(self, limit: int = 100) -> List[VerificationReport]:
        """Most recent reports, oldest first"""
        if limit <= 0:
            return []
        return list(self._reports.values())[-limit:]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "stored_reports": len(self._reports),
            "total_recorded": self.total_recorded,
            "max_reports": self.max_reports,
        }

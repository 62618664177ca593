# controllers/strategy_controller.py
from __future__ import annotations
import threading
from typing import List, Optional

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.enums.trading import RiskLevel
from dex_autotrader.errors import TradingError
from dex_autotrader.models.strategy import Strategy
from dex_autotrader.repositories.strategy_repository import StrategyRepository
from dex_autotrader.services.activity_journal import ActivityJournal
from dex_autotrader.utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)


class StrategyRegistry:
    """
    Owner of the "at most one enabled strategy" rule.
      - toggle(id, True): enable it and disable every other one in one statement
      - toggle(id, False): disable only that one
      - apply_risk_level(level): keep at most the first enabled strategy of that tier
    Every mutation goes through self._lock so concurrent toggles serialize.
    """

    def __init__(self, repo: StrategyRepository, journal: ActivityJournal | None = None) -> None:
        self.repo = repo
        self.journal = journal
        self._lock = threading.Lock()

    # ---------- reads ----------
    def list(self) -> List[Strategy]:
        return self.repo.list_all()

    def get(self, strategy_id: int) -> Optional[Strategy]:
        return self.repo.get(strategy_id)

    def active(self) -> Optional[Strategy]:
        enabled = [s for s in self.repo.list_all() if s.enabled]
        return enabled[0] if enabled else None

    def visible_for(self, level: RiskLevel) -> List[Strategy]:
        """Strategies shown for a risk tier; the memecoin bracket only under high risk."""
        level = RiskLevel(level)
        return [s for s in self.repo.list_all() if s.risk_level == level and (not s.is_memecoin or level == RiskLevel.HIGH)]

    # ---------- writes ----------
    @log_function
    def toggle(self, strategy_id: int, enabled: bool) -> Strategy:
        with self._lock:
            strategy = self.repo.get(strategy_id)
            if strategy is None:
                raise TradingError(ErrorKind.NOT_FOUND, f"Strategy {strategy_id} not found")
            if enabled:
                self.repo.enable_exclusive(strategy_id)
            else:
                self.repo.set_enabled(strategy_id, False)
            updated = self.repo.get(strategy_id)

        state = "enabled" if enabled else "disabled"
        logger.info(f"Strategy '{updated.name}' {state}")
        if self.journal:
            self.journal.info(f"Strategy {updated.name} {state}")
        return updated

    def set_active(self, strategy_id: int) -> Strategy:
        return self.toggle(strategy_id, True)

    @log_function
    def apply_risk_level(self, level: RiskLevel) -> List[Strategy]:
        """Disable enabled strategies of other tiers; among the matching ones the first by id survives."""
        level = RiskLevel(level)
        with self._lock:
            enabled = [s for s in self.repo.list_all() if s.enabled]
            keep = next((s for s in enabled if s.risk_level == level), None)
            to_disable = [s.id for s in enabled if keep is None or s.id != keep.id]
            self.repo.disable_many(to_disable)
            strategies = self.repo.list_all()

        if to_disable:
            logger.info(f"Risk level {level.value}: disabled strategies {to_disable}")
        return strategies

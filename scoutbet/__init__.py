"""ScoutBet - value-bet discovery and scoring across sports data sources."""

from .orchestrator import DiscoveryOrchestrator, build_orchestrator, discover_value_bets

__all__ = ["DiscoveryOrchestrator", "build_orchestrator", "discover_value_bets"]

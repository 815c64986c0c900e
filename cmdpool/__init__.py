from cmdpool.config import ConfigError, RunConfiguration
from cmdpool.executor import Orchestrator, RunSummary, run_pool

__all__ = ["ConfigError", "Orchestrator", "RunConfiguration", "RunSummary", "run_pool"]

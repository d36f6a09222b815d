"""
Shared endpoint dependencies.
"""
from functools import lru_cache

from cardwise.core.config import settings
from cardwise.core.database import engine
from cardwise.repositories import CachedCardRepository, SqlModelCardRepository
from cardwise.services.memory_model import SchedulerParameters
from cardwise.services.scheduling_service import SchedulingEngine


@lru_cache(maxsize=1)
def get_scheduling_engine() -> SchedulingEngine:
    """Dependency providing the application-wide scheduling engine."""
    repository = SqlModelCardRepository(engine)
    if settings.cache_enabled:
        repository = CachedCardRepository(repository)
    return SchedulingEngine(
        repository,
        parameters=SchedulerParameters.from_settings(settings),
        search_limit=settings.search_result_limit,
    )

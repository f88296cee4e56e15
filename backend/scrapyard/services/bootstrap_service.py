# Overview: Store startup, shared by the app factory and the CLI.

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional

from ..store import ConcurrencyConflictError, ScrapyardStore
from .auth_service import resume_session
from .subscription_service import run_lifecycle_checks

logger = logging.getLogger(__name__)


def start_store(config: Optional[Mapping[str, Any]] = None, clock: Optional[Callable] = None) -> ScrapyardStore:
    """
    Load (or seed) the store, expire overdue subscriptions, then resume the
    saved session. Lifecycle runs first so a tenant blocked while the
    service was down cannot resume.
    """
    store = ScrapyardStore(config, clock=clock)
    store.load_or_seed()

    blocked = run_lifecycle_checks(store)
    if blocked:
        logger.info("Lifecycle pass on load blocked %d companies", len(blocked))

    resume_session(store)
    return store


def run_with_retry(store: ScrapyardStore, func: Callable[[], Any], *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a store operation, reloading and retrying on a stale-version write.

    Another writer changed a collection since this store loaded it; reload
    picks up their version and the operation is applied again on top.
    """
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyConflictError:
            if attempt >= attempts - 1:
                raise
            logger.warning("Concurrent write detected, reloading (attempt %d)", attempt + 1)
            store.reload()
            time.sleep(backoff_base * (2 ** attempt))

"""
Coordinator Factory
Centralizes the logic for selecting adapters and wiring the study engine.
"""

import logging
import random

from lexis.application.config import AppConfig
from lexis.application.coordinator import SessionCoordinator
from lexis.application.ledger import ProgressLedger
from lexis.application.planner import SessionPlanner
from lexis.domain.comparison_groups import FRENCH_CONFUSING_GROUPS
from lexis.domain.ports import CardSource, KeyValueStore
from lexis.infrastructure.adapters.json_store import JsonFileStore
from lexis.infrastructure.adapters.memory_store import MemoryStore
from lexis.infrastructure.adapters.yaml_deck_source import YamlDeckSource

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> KeyValueStore:
    """
    Returns the key-value store implementation selected by config.
    """
    if config.store_backend == "memory":
        logger.debug("Store: memory")
        return MemoryStore()

    logger.debug(f"Store: json ({config.data_dir})")
    return JsonFileStore(config.data_dir)


def build_card_source(config: AppConfig) -> YamlDeckSource:
    return YamlDeckSource(config.decks_dir)


def build_coordinator(
    config: AppConfig,
    store: KeyValueStore | None = None,
    card_source: CardSource | None = None,
) -> SessionCoordinator:
    """
    Wire a SessionCoordinator from config.

    ``store`` and ``card_source`` may be passed in to bypass adapter selection.
    """
    store = store or build_store(config)
    card_source = card_source or build_card_source(config)

    groups = list(FRENCH_CONFUSING_GROUPS)
    if isinstance(card_source, YamlDeckSource):
        groups += card_source.comparison_groups()

    return SessionCoordinator(
        ledger=ProgressLedger(store),
        card_source=card_source,
        store=store,
        planner=SessionPlanner(random.Random(config.seed)),
        comparison_groups=groups,
        retry_minutes=config.retry_minutes,
        session_defaults=config.session_defaults(),
    )

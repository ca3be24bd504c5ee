"""
Adapter Factory
Centralizes the selection of card source, store and analytics sink.
"""

import logging

from lessfeed.application.config import AppConfig
from lessfeed.domain.errors import LessFeedError
from lessfeed.domain.ports import AnalyticsSink, CardSource, KeyValueStore
from lessfeed.infrastructure.adapters import (
    SupabaseAnalyticsSink,
    SupabaseCardSource,
    YamlCardSource,
)
from lessfeed.infrastructure.store import JsonFileStore

logger = logging.getLogger(__name__)


def get_card_source(config: AppConfig) -> CardSource:
    """
    Returns the card source for the config. A local cards file wins over the
    remote backend so content can be previewed offline.
    """
    if config.cards_file is not None:
        logger.debug(f"Card source: YAML ({config.cards_file})")
        return YamlCardSource(config.cards_file)

    if config.has_remote:
        logger.debug(f"Card source: Supabase ({config.supabase_url})")
        return SupabaseCardSource(
            url=config.supabase_url,
            api_key=config.supabase_key,
            timeout=config.request_timeout,
        )

    raise LessFeedError(
        "No card source configured. Set LESS_CARDS_FILE or LESS_SUPABASE_URL/LESS_SUPABASE_KEY."
    )


def get_store(config: AppConfig) -> KeyValueStore:
    return JsonFileStore(config.state_file)


def get_analytics_sink(config: AppConfig) -> AnalyticsSink | None:
    """Returns the remote sink, or None when no backend is configured."""
    if not config.has_remote:
        return None
    return SupabaseAnalyticsSink(
        url=config.supabase_url,
        api_key=config.supabase_key,
        timeout=config.request_timeout,
    )

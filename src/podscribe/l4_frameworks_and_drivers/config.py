"""Application config defaults — lives in L4, not domain."""

from __future__ import annotations

import copy

from podscribe.l1_entities.config import AppConfig
from podscribe.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'stream': {
        'chunk_size': 262_144,
        'probe_bytes': 16_384,
        'default_bitrate': 128_000,
        'request_timeout': 600.0,
        'resource_timeout': 30_000.0,
        'connect_retries': 3,
    },
    'transcription': {
        'model': '',
        'language': None,
        'word_timestamps': False,
    },
    'merge': {
        'gap_epsilon': 0.05,
        'lookup_tolerance': 0.1,
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)

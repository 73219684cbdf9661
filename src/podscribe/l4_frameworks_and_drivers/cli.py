"""CLI entry point for podscribe."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from pydantic import ValidationError

from podscribe import __version__


def _build_overrides(model: str | None, language: str | None, chunk_size: int | None) -> dict:
    overrides: dict = {}
    if model:
        overrides.setdefault('transcription', {})['model'] = model
    if language:
        overrides.setdefault('transcription', {})['language'] = language
    if chunk_size:
        overrides.setdefault('stream', {})['chunk_size'] = chunk_size
    return overrides


@click.command()
@click.argument('url')
@click.option('-s', '--start-time', default=0.0, type=float, show_default=True, help='Playback second to start at.')
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True),
    help='Path to YAML config file.',
)
@click.option('-m', '--model', default=None, help='Path to a whisper.cpp model file.')
@click.option('-l', '--language', default=None, help='Force a language code instead of auto-detect.')
@click.option('--chunk-size', default=None, type=click.IntRange(min=1), help='Bytes per decode window.')
@click.option('--log-file', default=None, type=click.Path(dir_okay=False), help='Write debug logs here.')
@click.version_option(version=__version__)
def cli(url, start_time, config_path, model, language, chunk_size, log_file):
    """podscribe -- stream a remote audio URL and print a timestamped transcript."""
    from podscribe.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from podscribe.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )

    overrides = _build_overrides(model, language, chunk_size)
    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides or None)
        config = build_app_config(raw)
    except (FileNotFoundError, ValidationError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)

    if not config.transcription.model:
        click.echo('Error: no whisper model configured (use --model or transcription.model).', err=True)
        sys.exit(1)

    if log_file:
        from podscribe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: only with --log-file
            setup_file_logging,
        )

        setup_file_logging(Path(log_file))

    from podscribe.l4_frameworks_and_drivers.headless_runner import (  # noqa: PLC0415 -- deferred: httpx/numpy not loaded on --help
        run_headless,
    )

    sys.exit(run_headless(url, start_time, config))

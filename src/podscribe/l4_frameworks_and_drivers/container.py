"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from collections.abc import Callable

from podscribe.l1_entities.config import AppConfig
from podscribe.l1_entities.session import SessionSnapshot
from podscribe.l2_use_cases.ports.audio_decoder import AudioDecoder
from podscribe.l2_use_cases.ports.transcriber import Transcriber
from podscribe.l3_interface_adapters.controllers.session_controller import SessionController
from podscribe.l3_interface_adapters.gateways.ffmpeg_audio_decoder import FfmpegAudioDecoder
from podscribe.l3_interface_adapters.gateways.httpx_range_fetcher import HttpxRangeFetcher


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing.

    The transcriber is optional: without one the controller starts in
    NOT_INITIALIZED until ``load_transcriber()`` or ``attach_transcriber()``.
    """

    def __init__(
        self,
        config: AppConfig,
        transcriber: Transcriber | None = None,
        decoder: AudioDecoder | None = None,
        fetcher: HttpxRangeFetcher | None = None,
        on_update: Callable[[SessionSnapshot], None] | None = None,
    ) -> None:
        self.config = config
        sc = config.stream
        self.fetcher = fetcher or HttpxRangeFetcher(
            request_timeout=sc.request_timeout,
            resource_timeout=sc.resource_timeout,
            connect_retries=sc.connect_retries,
        )
        self.decoder: AudioDecoder = decoder or FfmpegAudioDecoder()
        self.transcriber = transcriber

        self.controller = SessionController(
            config=config,
            fetcher=self.fetcher,
            decoder=self.decoder,
            transcriber=transcriber,
            on_update=on_update,
        )

    def load_transcriber(self) -> Transcriber:
        """Load the configured whisper.cpp model and hand it to the controller."""
        from podscribe.l3_interface_adapters.gateways.whisper_transcriber import (  # noqa: PLC0415 -- deferred: pywhispercpp loaded only when a model is requested
            WhisperTranscriber,
        )

        transcriber = WhisperTranscriber()
        transcriber.load_model(self.config.transcription.model)
        self.transcriber = transcriber
        self.controller.attach_transcriber(transcriber)
        return transcriber

    async def aclose(self) -> None:
        await self.controller.shutdown()
        await self.fetcher.aclose()
        if self.transcriber is not None:
            self.transcriber.close()

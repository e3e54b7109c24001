"""
Refine session: the end-to-end "run with prompt" flow.

Flow:
    1. Check the API key
    2. Export the flattened canvas into the workspace input file
    3. Clear any previous output
    4. Start the generation engine as a task, writing its outcome into a
       CompletionSignal
    5. Run the progress monitor in the caller's task until the signal reports
       success (place the new layer) or failure (propagate the error)
    6. Await the generation task before returning

The engine and the monitor share nothing but the signal. The engine is never
cancelled: it runs to success, terminal failure or exhaustion.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from canvas_refine.client.exceptions import MissingCredentialError
from canvas_refine.config import Settings
from canvas_refine.models.enums import ImageSize
from canvas_refine.persistence.credential_store import CredentialStore
from canvas_refine.persistence.workspace import Workspace
from canvas_refine.progress.monitor import ProgressCallback, ProgressMonitor
from canvas_refine.progress.signal import CompletionSignal
from canvas_refine.retry.engine import GenerationEngine, StatusCallback
from canvas_refine.retry.metadata import GenerationResult
from canvas_refine.tasks.host import DocumentSource, LayerSink

logger = structlog.get_logger(__name__)

MISSING_KEY_MESSAGE = "Enter your OpenAI API key first."


class RefineSession:
    """
    Runs one refine from canvas export to layer placement.

    Attributes:
        engine: Generation engine (retry, backoff, size fallback)
        workspace: Work folder for input/output images
        credentials: API key store
        layer_name: Name given to the inserted layer
    """

    def __init__(
        self,
        engine: GenerationEngine,
        workspace: Workspace,
        credentials: CredentialStore,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.workspace = workspace
        self.credentials = credentials
        self.settings = settings
        self.layer_name = settings.OUTPUT_LAYER_NAME
        self._clock = clock
        self._sleep = sleep

    def require_api_key(self) -> str:
        """
        Return the configured API key.

        Raises:
            MissingCredentialError: No key stored and none in the environment
        """
        api_key = self.credentials.load()
        if not api_key:
            raise MissingCredentialError(MISSING_KEY_MESSAGE)
        return api_key

    def new_monitor(self) -> ProgressMonitor:
        return ProgressMonitor.from_settings(self.settings, clock=self._clock, sleep=self._sleep)

    async def run(
        self,
        document: DocumentSource,
        sink: LayerSink,
        prompt: str,
        *,
        mode_label: str = "Refine",
        size: Optional[ImageSize] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> GenerationResult:
        """
        Export, generate, and place the result as a new layer.

        Args:
            document: Source of the flattened canvas
            sink: Receives the generated image as a new layer
            prompt: Edit instruction
            mode_label: Human-readable name of the operation (status text)
            size: Size preference override
            on_progress: Receives the estimated percent on every tick
            on_status: Receives (message, is_error) status updates

        Returns:
            GenerationResult of the engine

        Raises:
            MissingCredentialError: No API key configured
            NoDocumentError: Nothing to export
            GenerationExhausted: Every size candidate failed
        """
        log = logger.bind(mode=mode_label)

        def emit(message: str, is_error: bool = False) -> None:
            if on_status is not None:
                on_status(message, is_error)

        api_key = self.require_api_key()

        emit(f"Exporting canvas to {self.workspace.input_path.name} ...")
        image_bytes = await document.export_flattened()
        self.workspace.write_input(image_bytes)
        self.workspace.clear_output()

        emit(f"{mode_label}: generating image. This can take a minute or two.")
        log.info("Refine started", input_bytes=len(image_bytes))

        signal = CompletionSignal()
        generation = asyncio.create_task(
            self._generate_into(signal, image_bytes, prompt, size, api_key, on_status)
        )

        async def place_layer() -> None:
            emit("Placing new layer ...")
            await sink.insert_layer(self.workspace.read_output(), self.layer_name)
            emit(f"Done. New layer '{self.layer_name}' added.")

        monitor = self.new_monitor()
        try:
            state = await monitor.watch(signal.poll, on_complete=place_layer, on_progress=on_progress)
        except Exception as e:
            log.error(
                "Refine failed",
                error_type=type(e).__name__,
                error=str(e),
                percent=monitor.state.percent,
            )
            emit(str(e), True)
            raise
        finally:
            # The engine is not cancelled; wait for it to settle.
            await asyncio.gather(generation, return_exceptions=True)

        result: GenerationResult = signal.value
        log.info(
            "Refine completed",
            size=result.size.value,
            total_attempts=result.metadata.total_attempts,
            elapsed_ms=state.elapsed_ms,
        )
        return result

    async def _generate_into(
        self,
        signal: CompletionSignal,
        image_bytes: bytes,
        prompt: str,
        size: Optional[ImageSize],
        api_key: str,
        on_status: Optional[StatusCallback],
    ) -> None:
        try:
            result = await self.engine.generate(
                image_bytes, prompt, size=size, api_key=api_key, on_status=on_status
            )
        except Exception as e:
            signal.fail(e)
        else:
            signal.succeed(result)

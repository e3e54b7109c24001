"""CLI entrypoint for canvas-refine.

`serve` runs the HTTP API for the host plugin. `refine` runs one refine
without the API: the input file stands in for the exported canvas and the
result is written into a directory as a layer PNG.
"""

import asyncio
from pathlib import Path
from typing import Optional

import rich_click as click

from canvas_refine import __version__
from canvas_refine.api.dependencies import (
    get_credential_store,
    get_image_client,
    get_refine_session,
    get_settings,
)
from canvas_refine.client.exceptions import MissingCredentialError
from canvas_refine.client.prompts import resolve_prompt
from canvas_refine.logging_config import configure_logging
from canvas_refine.models.enums import ImageSize, RefinePreset
from canvas_refine.retry.exceptions import GenerationExhausted
from canvas_refine.retry.metadata import GenerationResult
from canvas_refine.tasks.exceptions import NoDocumentError
from canvas_refine.tasks.host import FileDocument, FileLayerSink
from canvas_refine.tasks.session import RefineSession


@click.group()
@click.version_option(version=__version__, prog_name="canvas-refine")
def cli() -> None:
    """Canvas Refine CLI."""
    settings = get_settings()
    configure_logging(
        settings.LOG_LEVEL,
        settings.ENVIRONMENT,
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
    )


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", type=click.IntRange(min=1, max=65535), default=8000, show_default=True)
def serve(host: str, port: int) -> None:
    """Serve the refine API."""
    from canvas_refine.main import run

    run(host=host, port=port)


@cli.command("set-key")
@click.argument("api_key")
def set_key(api_key: str) -> None:
    """Store the OpenAI API key in the work folder."""
    store = get_credential_store()
    try:
        store.save(api_key)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="API_KEY") from e
    click.echo(f"API key saved to {store.path}")


@cli.command("refine")
@click.argument("input_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory receiving the new layer PNG.",
)
@click.option(
    "--preset",
    type=click.Choice([p.value for p in RefinePreset]),
    default=RefinePreset.UPSCALE.value,
    show_default=True,
)
@click.option("--prompt", "custom_prompt", default=None, help="Instruction replacing the preset text.")
@click.option(
    "--size",
    type=click.Choice([s.value for s in ImageSize]),
    default=None,
    help="Size preference. Defaults to the IMAGE_SIZE setting.",
)
@click.pass_context
def refine(
    ctx: click.Context,
    input_path: Path,
    out_dir: Path,
    preset: str,
    custom_prompt: Optional[str],
    size: Optional[str],
) -> None:
    """Refine an image file and write the result as a layer PNG."""
    refine_preset = RefinePreset(preset)
    session = get_refine_session()
    sink = FileLayerSink(out_dir)

    try:
        result = asyncio.run(
            _run_refine(
                session,
                FileDocument(input_path),
                sink,
                resolve_prompt(refine_preset, custom_prompt),
                refine_preset.label,
                ImageSize(size) if size else None,
            )
        )
    except (MissingCredentialError, NoDocumentError) as e:
        raise click.ClickException(str(e)) from e
    except GenerationExhausted:
        # Already reported through the status lines
        ctx.exit(1)

    click.echo(f"Layer written to {sink.path_for(session.layer_name)} ({result.size.value})")


async def _run_refine(
    session: RefineSession,
    document: FileDocument,
    sink: FileLayerSink,
    prompt: str,
    mode_label: str,
    size: Optional[ImageSize],
) -> GenerationResult:
    try:
        return await session.run(
            document,
            sink,
            prompt,
            mode_label=mode_label,
            size=size,
            on_status=_echo_status,
        )
    finally:
        await get_image_client().close()


def _echo_status(message: str, is_error: bool) -> None:
    click.echo(message, err=is_error)


if __name__ == "__main__":  # pragma: no cover
    cli()

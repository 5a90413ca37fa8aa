import typer
from typing_extensions import Annotated
from typing import List, Optional
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
import asyncio
import logging

from photoprompt import __version__
from photoprompt.config import Settings, load_settings
from photoprompt.core import (
    ConfigurationError,
    build_gateway,
    build_orchestrator,
    storage_client_for,
)
from photoprompt.errors import GenerationError
from photoprompt.models import GenerationRequest, GenerationResult
from photoprompt.server import create_app

app = typer.Typer(
    name="photoprompt",
    help="🎨 Edit photos with a text prompt through an AI generation gateway.",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def version_callback(value: bool):
    if value:
        console.print(f"Photoprompt Version: [bold green]{__version__}[/bold green]")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
):
    pass


def _print_result(result: GenerationResult) -> None:
    if not result.success:
        console.print(f"\n[bold red]Error:[/bold red] {result.error}")
        raise typer.Exit(code=1)
    if result.image_url:
        console.print(
            Panel(
                f"Image generated successfully! URL: [blue]{result.image_url}[/blue]",
                title="[bold green]Success ✨[/bold green]",
                expand=False,
            )
        )
    else:
        console.print(
            Panel(
                f"Generation is in progress. Check it later with: photoprompt status {result.task_id}",
                title="[bold yellow]Task created[/bold yellow]",
                expand=False,
            )
        )


def _orchestrator_or_exit(settings: Settings):
    try:
        return build_orchestrator(settings)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def generate(
    prompt: Annotated[
        Optional[str],
        typer.Option(
            "--prompt",
            "-p",
            help="The text prompt for image generation. If not provided, you will be asked to enter it.",
            show_default=False,
        ),
    ] = None,
    images: Annotated[
        Optional[List[str]],
        typer.Option(
            "--image",
            "-i",
            help="Local reference image. Repeat to send several, in order.",
        ),
    ] = None,
    num_inference_steps: Annotated[
        Optional[int],
        typer.Option("--steps", min=1, help="Number of inference steps."),
    ] = None,
    guidance_scale: Annotated[
        Optional[float], typer.Option("--guidance", help="Guidance scale.")
    ] = None,
    width: Annotated[Optional[int], typer.Option(min=1, help="Image width.")] = None,
    height: Annotated[Optional[int], typer.Option(min=1, help="Image height.")] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log every pipeline step.", is_flag=True),
    ] = False,
):
    setup_logging(verbose)
    if prompt is None:
        prompt = typer.prompt("Please enter the prompt for image generation")

    orchestrator = _orchestrator_or_exit(load_settings())
    request = GenerationRequest(
        prompt=prompt,
        images=images or [],
        num_inference_steps=num_inference_steps,
        guidance_scale=guidance_scale,
        width=width,
        height=height,
    )
    console.print(f'📜 Prompt: "{prompt}"')
    if request.images:
        console.print(f"🖼️ Reference images: {', '.join(request.images)}")

    try:
        with console.status("[spinner]Processing...", spinner="dots"):
            result = asyncio.run(orchestrator.submit(request))
    except GenerationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    _print_result(result)


@app.command()
def status(
    task_id: Annotated[str, typer.Argument(help="Task identifier returned by generate.")],
    verbose: Annotated[bool, typer.Option("--verbose", is_flag=True)] = False,
):
    setup_logging(verbose)
    orchestrator = _orchestrator_or_exit(load_settings())
    result = asyncio.run(orchestrator.check_status(task_id))
    if result.success and not result.image_url:
        console.print(f"Task [cyan]{task_id}[/cyan] is still running.")
        return
    _print_result(result)


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option(help="Interface to bind.")] = None,
    port: Annotated[Optional[int], typer.Option(help="Port to bind.")] = None,
    debug: Annotated[bool, typer.Option("--debug", is_flag=True)] = False,
):
    """Run the generation gateway HTTP server."""
    setup_logging(debug)
    logging.getLogger("photoprompt").setLevel(logging.INFO)
    settings = load_settings()
    try:
        storage_client = storage_client_for(settings, settings.storage.service_key)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    bind_host = host or settings.gateway.host
    bind_port = port or settings.gateway.port
    console.print(f"🎨 Starting Photoprompt gateway on http://{bind_host}:{bind_port}")
    create_app(lambda: build_gateway(settings, storage_client)).run(
        host=bind_host, port=bind_port, debug=debug, threaded=True
    )


@app.command(name="show-config")
def show_config_command():
    settings = load_settings()
    table = Table(title="⚙️ Photoprompt Configuration")
    table.add_column("Section", style="cyan", no_wrap=True)
    table.add_column("Setting", style="green")
    table.add_column("Value", style="yellow")

    def secret(value: str) -> str:
        return "✅ Set" if value else "⚠️ Not Set"

    table.add_row("storage", "url", str(settings.storage.url or "Not specified"))
    table.add_row("storage", "bucket", settings.storage.bucket)
    table.add_row("storage", "service_key", secret(settings.storage.service_key))
    table.add_row("storage", "anon_key", secret(settings.storage.anon_key))
    table.add_row("primary", "base_url", str(settings.primary.base_url))
    table.add_row("primary", "model", settings.primary.model)
    table.add_row("primary", "api_key", secret(settings.primary.api_key))
    table.add_row("secondary", "edit_application", settings.secondary.edit_application)
    table.add_row(
        "secondary", "text_to_image_application", settings.secondary.text_to_image_application
    )
    table.add_row("secondary", "api_key", secret(settings.secondary.api_key))
    table.add_row("gateway", "gateway_url", str(settings.gateway.gateway_url))
    table.add_row("gateway", "request_timeout", f"{settings.gateway.request_timeout}s")
    console.print(table)


if __name__ == "__main__":
    app()

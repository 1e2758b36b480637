from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer
import uvicorn

from unit2b.core.config import get_settings
from unit2b.core.schemas import HistoryType
from unit2b.runtime.assistant import NoMicrophone, build_assistant

cli = typer.Typer(name="unit2b", help="Unit 2B voice assistant")
apps_cli = typer.Typer(help="Installed applications")
history_cli = typer.Typer(help="Command history")

cli.add_typer(apps_cli, name="apps")
cli.add_typer(history_cli, name="history")


class EchoObserver:
    """Print session events on the terminal."""

    def on_status(self, message: str) -> None:
        typer.echo(f"[status] {message}")

    def on_listening_changed(self, listening: bool) -> None:
        typer.echo("[listening]" if listening else "[idle]")

    def on_processing_changed(self, processing: bool) -> None:
        return None


@cli.command()
def serve() -> None:
    """Start the HTTP API."""
    settings = get_settings()
    uvicorn.run("unit2b.main:app", host=settings.host, port=settings.port)


@cli.command()
def listen() -> None:
    """Listen on the microphone until interrupted (Ctrl+C)."""
    assistant = build_assistant(get_settings())
    assistant.events.subscribe(EchoObserver())

    async def _run() -> int:
        result = await assistant.session.start_listening()
        if not result.success:
            return 1
        try:
            while assistant.session.listening:
                await asyncio.sleep(0.5)
        finally:
            await assistant.shutdown()
        return 0

    try:
        code = asyncio.run(_run())
    except KeyboardInterrupt:
        code = 0
    raise typer.Exit(code=code)


@cli.command()
def say(
    text: str = typer.Argument(..., help="Transcript to dispatch"),
    quiet: bool = typer.Option(False, "--quiet", help="Do not use the audio output"),
) -> None:
    """Dispatch a transcript as if it had been spoken."""
    assistant = build_assistant(get_settings(), audio=not quiet, recorder=NoMicrophone())
    assistant.events.subscribe(EchoObserver())
    result = asyncio.run(assistant.dispatch(text))
    typer.echo(json.dumps(result.to_payload(), ensure_ascii=False))
    if not result.success:
        raise typer.Exit(code=1)


@cli.command("commands")
def list_commands() -> None:
    """List the built-in voice commands."""
    assistant = build_assistant(get_settings(), audio=False)
    for command in assistant.registry:
        keywords = ", ".join(command.keywords)
        typer.echo(f"{command.phrase}\t{keywords}\t{command.description or ''}")


@apps_cli.command("list")
def apps_list(q: Optional[str] = typer.Option(None, "--q", help="Filter by name or package")) -> None:
    assistant = build_assistant(get_settings(), audio=False)
    apps = asyncio.run(assistant.inventory.list_apps())
    needle = (q or "").strip().lower()
    for app in apps:
        if needle and needle not in app.name.lower() and needle not in app.package_id.lower():
            continue
        suffix = "\t(system)" if app.is_system else ""
        typer.echo(f"{app.name}\t{app.package_id}{suffix}")


@apps_cli.command("resolve")
def apps_resolve(query: str) -> None:
    """Show which application a spoken name resolves to, without launching it."""
    assistant = build_assistant(get_settings(), audio=False)
    apps = asyncio.run(assistant.inventory.list_apps())
    match = assistant.resolver.resolve(query, apps)
    if match is None:
        typer.echo(assistant.resolver.describe_miss(query, apps))
        raise typer.Exit(code=1)
    typer.echo(json.dumps({
        "app": match.app.to_payload(),
        "confidence": round(match.confidence, 3),
        "strategy": match.strategy,
    }, ensure_ascii=False))


@history_cli.command("list")
def history_list(
    limit: int = typer.Option(20, "--limit"),
    q: Optional[str] = typer.Option(None, "--q"),
    type: Optional[HistoryType] = typer.Option(None, "--type"),
) -> None:
    assistant = build_assistant(get_settings(), audio=False)
    entries = asyncio.run(assistant.history.read(query=q, entry_type=type, limit=limit))
    typer.echo(json.dumps({"items": [entry.to_payload() for entry in entries]}, ensure_ascii=False))


@history_cli.command("clear")
def history_clear() -> None:
    assistant = build_assistant(get_settings(), audio=False)
    asyncio.run(assistant.history.clear())
    typer.echo("History cleared")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

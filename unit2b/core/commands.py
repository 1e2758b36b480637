"""Commandes integrees de l'assistant."""

from __future__ import annotations

from datetime import datetime

from unit2b.core.registry import CommandRegistry
from unit2b.core.schemas import Command, CommandContext, CommandResult


async def _tell_time(ctx: CommandContext) -> None:
    await ctx.speak(f"The time is {datetime.now().strftime('%H:%M')}")


async def _tell_date(ctx: CommandContext) -> None:
    await ctx.speak(f"Today is {datetime.now().strftime('%A, %B %d')}")


async def _app_list(ctx: CommandContext) -> None:
    apps = await ctx.list_apps()
    ctx.status("Opening application list")
    if not apps:
        await ctx.speak("No applications detected.")
        return
    await ctx.speak(f"Found {len(apps)} applications")


async def _open_camera(ctx: CommandContext) -> CommandResult:
    return await ctx.launch_app("camera")


def _say(text: str):
    async def _action(ctx: CommandContext) -> None:
        await ctx.speak(text)

    return _action


def default_commands(assistant_name: str = "Unit 2B") -> list[Command]:
    return [
        Command(
            phrase="what time is it",
            description="Tells the current time",
            keywords=("time",),
            action=_tell_time,
        ),
        Command(
            phrase="what day is it",
            description="Tells the current date",
            keywords=("day", "date", "today"),
            action=_tell_date,
        ),
        Command(
            phrase="app list",
            description="Lists the installed applications",
            keywords=("app list", "apps", "list apps", "show apps", "application list"),
            action=_app_list,
        ),
        Command(
            phrase="open camera",
            description="Opens the device camera",
            keywords=("camera", "cam"),
            action=_open_camera,
        ),
        Command(
            phrase="hello",
            description="Greets the user",
            keywords=("hello", "hi"),
            action=_say(f"Hello. {assistant_name} at your service."),
        ),
        Command(
            phrase="status",
            description="Reports system status",
            keywords=("status",),
            action=_say(f"All systems operational. {assistant_name} ready for commands."),
        ),
    ]


def register_defaults(registry: CommandRegistry, assistant_name: str = "Unit 2B") -> CommandRegistry:
    for command in default_commands(assistant_name):
        registry.register(command)
    return registry

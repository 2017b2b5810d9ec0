"""Commands that report information about the bot itself."""

from __future__ import annotations

import os
import platform as _platform
import time
from datetime import datetime, timedelta
from typing import Sequence

import psutil

from chatcommands.basecommand import (
    Arg,
    Command,
    IncomingMessage,
    Message,
    PermissionLevel,
    _format_duration,
)

SOURCE_URL = "https://example.com/chatbot"
PROCESSED_MESSAGES_KEY = "processed_message_times"
RECENT_MESSAGES_INTERVAL = timedelta(seconds=60)
DOCKER_ENV_VAR = "RUNNING_IN_DOCKER"


def sentence_case(s: str) -> str:
    """``s`` with its first character upper case and the rest lower case."""
    if not s:
        return s
    return s[:1].upper() + s[1:].lower()


def bot_info(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Describe the bot, where it runs and its prefix."""
    platform = msg.resources.platform
    text = (
        f"Beep boop, this is Airbot running as {platform.username()} in {msg.message.channel}"
        f" with prefix {msg.prefix} on {platform.name()}."
        f" Source code available ( {msg.prefix}source )"
    )
    return [Message(channel=msg.message.channel, text=text)]


def prefix(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Reply with the channel's prefix."""
    return [Message(channel=msg.message.channel, text="This channel's prefix is " + msg.prefix)]


def source(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Reply with where the bot's source code lives."""
    return [Message(channel=msg.message.channel, text=f"Source code for Airbot available at {SOURCE_URL}")]


def _host_names() -> tuple[str, str]:
    os_name = _platform.system().lower()
    platform_name = os_name
    if os_name == "linux":
        try:
            platform_name = _platform.freedesktop_os_release().get("ID", "")
        except OSError:
            platform_name = ""
    return platform_name, os_name


def _seconds(value: float) -> timedelta:
    return timedelta(seconds=int(value + 0.5))


def _recent_message_count(msg: IncomingMessage) -> int:
    cutoff = datetime.now() - RECENT_MESSAGES_INTERVAL
    times = msg.resources.cache.get(PROCESSED_MESSAGES_KEY, ())
    return sum(1 for when in times if when > cutoff)


def _joined_channel_count(msg: IncomingMessage) -> int:
    channels = msg.resources.channels
    return 0 if channels is None else len(list(channels.all()))


def stats(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report the host, uptimes, load and recent activity.

    Recently processed messages are counted from the datetimes stored in the
    cache under ``PROCESSED_MESSAGES_KEY``.
    """
    cpu_percent = psutil.cpu_percent(interval=0.05)
    memory = psutil.virtual_memory()
    platform_name, os_name = _host_names()
    in_docker = DOCKER_ENV_VAR in os.environ
    now = time.time()
    bot_uptime = _seconds(now - psutil.Process(os.getpid()).create_time())
    system_uptime = timedelta(seconds=int(now - psutil.boot_time()))
    recent = _recent_message_count(msg)
    joined = _joined_channel_count(msg)

    parts = [f"Airbot running on {sentence_case(platform_name)} {sentence_case(os_name)}"]
    if in_docker:
        parts.append(" (Docker)")
    parts.append(f", bot uptime: {_format_duration(bot_uptime)}")
    parts.append(f", system uptime: {_format_duration(system_uptime)}")
    parts.append(f", CPU: {cpu_percent:.1f}%")
    parts.append(f", RAM: {memory.percent:.1f}%")
    parts.append(
        f", processed {recent} messages in {joined} channels in the last "
        f"{int(RECENT_MESSAGES_INTERVAL.total_seconds())} seconds"
    )
    return [Message(channel=msg.message.channel, text="".join(parts))]


BOT_INFO_COMMAND = Command(
    name="botinfo",
    aliases=("bot", "info", "about", "ping"),
    desc="Replies with info about the bot.",
    permission=PermissionLevel.NORMAL,
    handler=bot_info,
)

PREFIX_COMMAND = Command(
    name="prefix",
    desc="Replies with the prefix in this channel.",
    permission=PermissionLevel.NORMAL,
    handler=prefix,
)

SOURCE_COMMAND = Command(
    name="source",
    desc="Replies a link to the bot's source code.",
    permission=PermissionLevel.NORMAL,
    handler=source,
)

STATS_COMMAND = Command(
    name="stats",
    desc="Replies with stats about the bot.",
    permission=PermissionLevel.NORMAL,
    handler=stats,
)

COMMANDS: tuple[Command, ...] = (
    BOT_INFO_COMMAND,
    PREFIX_COMMAND,
    SOURCE_COMMAND,
    STATS_COMMAND,
)
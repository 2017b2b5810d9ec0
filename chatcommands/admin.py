"""Bot administration commands: joining and leaving channels, prefixes, slowmode, restarts."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from chatcommands.basecommand import (
    Arg,
    ArgType,
    BadUsageError,
    Command,
    IncomingMessage,
    Message,
    Param,
    PermissionLevel,
)

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "$"
MAX_USERS_PER_MESSAGE = 15
LEAVE_DELAY_SECONDS = 0.5
RESTART_DELAY_SECONDS = 0.1
RESTART_REQUESTER_KEY = "restart_requester"

RESTART_REQUESTED = threading.Event()
"""Set shortly after a restart has been requested through the restart command."""

T = TypeVar("T")


class PlatformChannelNotFoundError(LookupError):
    """A platform could not find the channel it was asked to join."""


class BotBannedError(PermissionError):
    """The bot is banned from the channel it was asked to join."""


@dataclass
class JoinedChannel:
    """A channel the bot has joined on a platform."""

    platform: str
    channel: str
    prefix: str
    joined_at: datetime


class ChannelStore:
    """Thread-safe in-memory record of joined channels."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._channels: list[JoinedChannel] = []

    def find(self, platform: str, channel: str) -> list[JoinedChannel]:
        """Joined channels on ``platform`` whose name matches ``channel``, ignoring case."""
        wanted = channel.lower()
        with self._lock:
            return [
                c for c in self._channels
                if c.platform == platform and c.channel.lower() == wanted
            ]

    def add(self, platform: str, channel: str, prefix: str) -> JoinedChannel:
        """Record that the bot joined ``channel`` with ``prefix``."""
        record = JoinedChannel(platform=platform, channel=channel, prefix=prefix, joined_at=self._clock())
        with self._lock:
            self._channels.append(record)
        return record

    def remove(self, platform: str, channel: str) -> None:
        """Forget a joined channel; raise KeyError if the bot is not in it."""
        wanted = channel.lower()
        with self._lock:
            kept = [
                c for c in self._channels
                if not (c.platform == platform and c.channel.lower() == wanted)
            ]
            if len(kept) == len(self._channels):
                raise KeyError(f"not in channel {channel} on {platform}")
            self._channels = kept

    def all(self) -> list[JoinedChannel]:
        """Every joined channel, in the order they were joined."""
        with self._lock:
            return list(self._channels)

    def __iter__(self) -> Iterator[JoinedChannel]:
        return iter(self.all())


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """``items`` split into consecutive lists of at most ``size`` elements."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


def global_slowmode_key(platform_name: str) -> str:
    """Cache key holding whether bot slowmode is on for a platform."""
    return f"global_slowmode_{platform_name}"


def _reply(msg: IncomingMessage, text: str) -> list[Message]:
    return [Message(channel=msg.message.channel, text=text)]


def bot_slowmode(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Turn the per-platform bot slowmode on or off, or report its state."""
    enable_arg = args[0]
    platform_name = msg.resources.platform.name()
    key = global_slowmode_key(platform_name)

    if not enable_arg.present:
        enabled = bool(msg.resources.cache.get(key, False))
        state = "enabled" if enabled else "disabled"
        return _reply(msg, f"Bot slowmode is currently {state} on {platform_name}")

    enable = enable_arg.bool_value
    try:
        msg.resources.cache[key] = enable
    except Exception as exc:
        logger.warning("Failed to set bot slowmode to %s on %s: %s", enable, platform_name, exc)
        start = "Failed to enable" if enable else "Failed to disable"
        return _reply(msg, f"{start} bot slowmode on {platform_name}")

    start = "Enabled" if enable else "Disabled"
    return _reply(msg, f"{start} bot slowmode on {platform_name}")


def echo(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Send back whatever was given."""
    value_arg = args[0]
    if not value_arg.present:
        raise BadUsageError
    return _reply(msg, value_arg.string_value)


def _join_channel(msg: IncomingMessage, target: str, prefix: str) -> list[Message]:
    platform = msg.resources.platform
    channels: ChannelStore = msg.resources.channels
    platform_name = platform.name()

    if channels.find(platform_name, target):
        return _reply(msg, f"Channel {target} is already joined")

    channels.add(platform_name, target, prefix)

    try:
        platform.join(target, prefix)
    except PlatformChannelNotFoundError:
        return _reply(msg, f"Channel {target} not found")
    except BotBannedError:
        return _reply(msg, f"Bot is banned from {target}")
    except Exception as exc:
        logger.warning("Joining channel %s reported an error: %s", target, exc)

    out = _reply(msg, f"Successfully joined channel {target} with prefix {prefix}")
    if msg.message.channel.lower() != target.lower():
        out.append(
            Message(
                channel=target,
                text=f"Successfully joined channel! (prefix: {prefix} ) For all commands, type {prefix}commands.",
            )
        )
    return out


def join(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Join the sender's own channel."""
    prefix_arg = args[0]
    prefix = prefix_arg.string_value if prefix_arg.present else DEFAULT_PREFIX
    return _join_channel(msg, msg.message.user, prefix)


def join_other(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Join the named channel."""
    channel_arg = args[0]
    if not channel_arg.present:
        raise BadUsageError
    prefix_arg = args[1] if len(args) > 1 else Arg()
    prefix = prefix_arg.string_value if prefix_arg.present else DEFAULT_PREFIX
    return _join_channel(msg, channel_arg.string_value, prefix)


def joined(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """List the channels the bot is in, a limited number per message."""
    channels = [c.channel for c in msg.resources.channels.all()]
    groups = chunk(channels, MAX_USERS_PER_MESSAGE)
    out = []
    for i, group in enumerate(groups):
        if i == 0:
            text = f"Bot is currently in {', '.join(group)}"
        else:
            text = ", ".join(channels)
        if len(groups) > 1 and i != len(groups) - 1:
            text += ","
        out.append(Message(channel=msg.message.channel, text=text))
    return out


def _leave_later(platform, target: str) -> None:
    def leave_now() -> None:
        try:
            platform.leave(target)
        except Exception as exc:
            logger.warning("failed to leave channel %s: %s", target, exc)

    timer = threading.Timer(LEAVE_DELAY_SECONDS, leave_now)
    timer.daemon = True
    timer.start()


def _leave_channel(msg: IncomingMessage, target: str) -> list[Message]:
    platform = msg.resources.platform
    try:
        msg.resources.channels.remove(platform.name(), target)
    except KeyError:
        return _reply(msg, f"Bot is not in channel {target}")

    _leave_later(platform, target)

    if msg.message.channel.lower() == target.lower():
        return _reply(msg, "Successfully left channel.")
    return _reply(msg, f"Successfully left channel {target}")


def leave(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Leave the channel the message was sent in."""
    return _leave_channel(msg, msg.message.channel)


def leave_other(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Leave the named channel."""
    channel_arg = args[0]
    if not channel_arg.present:
        raise BadUsageError
    return _leave_channel(msg, channel_arg.string_value)


def restart_bot(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Record who asked for a restart and signal ``RESTART_REQUESTED`` shortly after."""
    msg.resources.cache[RESTART_REQUESTER_KEY] = {
        "platform": msg.resources.platform.name(),
        "channel": msg.message.channel,
        "message_id": msg.message.id,
    }
    timer = threading.Timer(RESTART_DELAY_SECONDS, RESTART_REQUESTED.set)
    timer.daemon = True
    timer.start()
    return _reply(msg, "Restarting Airbot.")


def set_prefix(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Change the bot's prefix in the current channel."""
    prefix_arg = args[0]
    if not prefix_arg.present:
        raise BadUsageError
    new_prefix = prefix_arg.string_value
    platform = msg.resources.platform

    for record in msg.resources.channels.find(platform.name(), msg.message.channel):
        record.prefix = new_prefix

    try:
        platform.set_prefix(msg.message.channel, new_prefix)
    except Exception as exc:
        logger.warning("Failed to update prefix: %s", exc)
        return _reply(msg, "Failed to update prefix")

    return _reply(msg, f"Prefix set to {new_prefix}")


BOT_SLOWMODE_COMMAND = Command(
    name="botslowmode",
    desc=(
        "Sets the bot to follow a global (per-platform) 1 second slowmode. "
        "If no argument is provided, checks if slowmode is enabled."
    ),
    params=(Param(name="enable", type=ArgType.BOOLEAN, required=False),),
    permission=PermissionLevel.OWNER,
    handler=bot_slowmode,
)

ECHO_COMMAND = Command(
    name="echo",
    desc="Echoes back whatever is sent.",
    params=(Param(name="message", type=ArgType.VARIADIC, required=True),),
    permission=PermissionLevel.OWNER,
    handler=echo,
)

JOIN_COMMAND = Command(
    name="join",
    desc="Tells the bot to join your chat.",
    params=(Param(name="prefix", type=ArgType.STRING, required=False),),
    permission=PermissionLevel.NORMAL,
    handler=join,
)

JOIN_OTHER_COMMAND = Command(
    name="joinother",
    desc="Tells the bot to join a chat.",
    params=(
        Param(name="channel", type=ArgType.USERNAME, required=True),
        Param(name="prefix", type=ArgType.STRING, required=False),
    ),
    permission=PermissionLevel.OWNER,
    handler=join_other,
)

JOINED_COMMAND = Command(
    name="joined",
    desc="Lists the channels the bot is currently in.",
    permission=PermissionLevel.OWNER,
    handler=joined,
)

LEAVE_COMMAND = Command(
    name="leave",
    desc="Tells the bot to leave your chat.",
    permission=PermissionLevel.ADMIN,
    handler=leave,
)

LEAVE_OTHER_COMMAND = Command(
    name="leaveother",
    desc="Tells the bot to leave a chat.",
    params=(Param(name="channel", type=ArgType.USERNAME, required=True),),
    permission=PermissionLevel.OWNER,
    handler=leave_other,
)

RESTART_COMMAND = Command(
    name="restart",
    desc="Restarts the bot. Does not restart the database, etc.",
    permission=PermissionLevel.ADMIN,
    handler=restart_bot,
)

SET_PREFIX_COMMAND = Command(
    name="setprefix",
    desc="Sets the bot's prefix in the channel.",
    params=(Param(name="prefix", type=ArgType.STRING, required=True),),
    permission=PermissionLevel.ADMIN,
    handler=set_prefix,
)

COMMANDS: tuple[Command, ...] = (
    BOT_SLOWMODE_COMMAND,
    ECHO_COMMAND,
    JOIN_COMMAND,
    JOIN_OTHER_COMMAND,
    JOINED_COMMAND,
    LEAVE_COMMAND,
    LEAVE_OTHER_COMMAND,
    RESTART_COMMAND,
    SET_PREFIX_COMMAND,
)
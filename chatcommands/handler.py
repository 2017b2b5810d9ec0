"""Dispatching incoming chat messages to the commands they trigger."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Hashable, Optional, Sequence

from chatcommands import admin, botinfo, bulk, echo, fun, gamba, kick, moderation
from chatcommands.basecommand import (
    Arg,
    ArgType,
    BadUsageError,
    Command,
    IncomingMessage,
    Message,
    Param,
    Resources,
    UserUnknownError,
    authorized,
)

logger = logging.getLogger(__name__)

CHANNEL_SCOPE = "channel"
USER_SCOPE = "user"
UNKNOWN_USER_KEY = 0


@dataclass(frozen=True)
class OutgoingMessage:
    """A message to send, optionally as a reply to another message."""

    message: Message
    reply_to_id: str = ""


class CooldownStore:
    """Thread-safe record of when each command last ran, per channel or per user."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: dict[tuple[str, Hashable, str], datetime] = {}

    def last_run(self, scope: str, key: Hashable, command: str) -> datetime:
        """When ``command`` last ran for ``key`` in ``scope``; ``datetime.min`` if never."""
        with self._lock:
            return self._runs.get((scope, key, command), datetime.min)

    def mark(self, scope: str, key: Hashable, command: str, when: datetime) -> None:
        """Record that ``command`` ran for ``key`` in ``scope`` at ``when``."""
        with self._lock:
            self._runs[(scope, key, command)] = when


def help_command(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Describe a command, or explain how to ask for help."""
    target_arg = args[0] if args else Arg()
    channel = msg.message.channel
    if not target_arg.present:
        return [
            Message(
                channel=channel,
                text=(
                    f"For help with a command, use {msg.prefix}help <command>. "
                    f"To see available commands, use {msg.prefix}commands"
                ),
            )
        ]
    wanted = target_arg.string_value.casefold()
    for cmd in all_commands():
        if cmd.name.casefold() == wanted:
            return [Message(channel=channel, text=f"[ {msg.prefix}{cmd.name} ] {cmd.help()}")]
    return []


HELP_COMMAND = Command(
    name="help",
    desc="Displays help for a command.",
    params=(Param(name="command", type=ArgType.STRING, required=False),),
    handler=help_command,
)

COMMAND_GROUPS: dict[str, tuple[Command, ...]] = {
    "Admin": admin.COMMANDS,
    "Bot info": (HELP_COMMAND, *botinfo.COMMANDS),
    "Bulk": bulk.COMMANDS,
    "Fun": fun.COMMANDS,
    "Gamba": gamba.COMMANDS,
    "Kick": kick.COMMANDS,
    "Moderation": moderation.COMMANDS,
    "Echo": echo.COMMANDS,
}


def all_commands() -> tuple[Command, ...]:
    """Every command the bot can run, group by group."""
    return tuple(cmd for group in COMMAND_GROUPS.values() for cmd in group)


_COMMAND_PATTERNS: tuple[tuple[Command, re.Pattern[str]], ...] = tuple(
    (cmd, cmd.compile()) for cmd in all_commands()
)


def parse_args(msg: IncomingMessage, command: Command, pattern: re.Pattern[str]) -> list[Arg]:
    """Parse the command's parameters from the message text."""
    match = pattern.match(msg.text_without_prefix())
    if match is None:
        raise ValueError(f"message {msg.message.text!r} does not match command {command.name}")
    rest = " ".join(group or "" for group in match.groups()).strip()
    parsed = []
    for param in command.params:
        value, rest = param.parse(rest)
        parsed.append(value)
    return parsed


class Handler:
    """Runs the commands an incoming message triggers and collects their replies."""

    def __init__(
        self,
        resources: Optional[Resources] = None,
        cooldowns: Optional[CooldownStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.resources = resources if resources is not None else Resources()
        self.cooldowns = cooldowns if cooldowns is not None else CooldownStore()
        self._clock = clock or datetime.now

    def handle(self, msg: IncomingMessage) -> list[OutgoingMessage]:
        """Handle a message, returning the messages to send in response."""
        self._set_resources(msg)
        if not msg.message.text.strip().startswith(msg.prefix):
            return []
        body = msg.text_without_prefix()
        out: list[OutgoingMessage] = []
        for command, pattern in _COMMAND_PATTERNS:
            if pattern.match(body):
                out.extend(self._run(msg, command, pattern))
        return out

    def _set_resources(self, msg: IncomingMessage) -> None:
        # The platform is set by the platform itself before the message arrives.
        msg.resources = replace(self.resources, platform=msg.resources.platform)

    def _run(self, msg: IncomingMessage, command: Command, pattern: re.Pattern[str]) -> list[OutgoingMessage]:
        channel = msg.message.channel
        if not authorized(msg.permission_level, command.permission):
            logger.info(
                "Permission denied: command %s, user %s, channel %s; has permission %s, required: %s",
                command.name, msg.message.user, channel,
                msg.permission_level.label, command.permission.label,
            )
            return []

        now = self._clock()
        since_channel = now - self.cooldowns.last_run(CHANNEL_SCOPE, channel, command.name)
        if command.channel_cooldown > since_channel:
            logger.info("Skipping %s%s: channel cooldown not over", msg.prefix, command.name)
            return []

        try:
            user_key = msg.resources.platform.user(msg.message.user).id
        except UserUnknownError:
            user_key = UNKNOWN_USER_KEY
        since_user = now - self.cooldowns.last_run(USER_SCOPE, user_key, command.name)
        if command.user_cooldown > since_user:
            logger.info("Skipping %s%s: user cooldown not over", msg.prefix, command.name)
            return []

        args = parse_args(msg, command, pattern)
        set_channel_cooldown = True
        try:
            replies = command.handler(msg, args)
        except BadUsageError:
            set_channel_cooldown = False
            out = [
                OutgoingMessage(
                    message=Message(channel=channel, text="Usage: " + command.usage(msg.prefix)),
                    reply_to_id="" if command.disable_replies else msg.message.id,
                )
            ]
        else:
            out = [
                OutgoingMessage(
                    message=reply,
                    reply_to_id=(
                        msg.message.id
                        if not command.disable_replies and reply.channel == channel
                        else ""
                    ),
                )
                for reply in replies or ()
            ]

        finished = self._clock()
        if set_channel_cooldown:
            self.cooldowns.mark(CHANNEL_SCOPE, channel, command.name, finished)
        self.cooldowns.mark(USER_SCOPE, user_key, command.name, finished)
        return out
"""Moderation commands."""

from __future__ import annotations

from datetime import timedelta
from typing import Sequence

from chatcommands.basecommand import Arg, Command, IncomingMessage, Message, PermissionLevel


def vanish(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Time the sender out for one second; sends nothing back."""
    msg.resources.platform.timeout(msg.message.user, msg.message.channel, timedelta(seconds=1))
    return []


VANISH_COMMAND = Command(
    name="vanish",
    desc="Times you out for 1 second.",
    permission=PermissionLevel.NORMAL,
    handler=vanish,
)

COMMANDS: tuple[Command, ...] = (VANISH_COMMAND,)
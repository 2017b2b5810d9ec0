"""Commands that perform bulk operations."""

from __future__ import annotations

from typing import Sequence

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


def filesay(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Send every line of a paste as a message.

    The paste is fetched with ``resources.clients.pastebin.fetch_paste(url)``,
    which returns the paste's lines.
    """
    url_arg = args[0]
    if not url_arg.present:
        raise BadUsageError
    lines = msg.resources.clients.pastebin.fetch_paste(url_arg.string_value)
    return [Message(channel=msg.message.channel, text=line) for line in lines]


FILESAY_COMMAND = Command(
    name="filesay",
    desc="Runs all commands in a given pastebin file.",
    params=(Param(name="pastebin raw URL", type=ArgType.STRING, required=True),),
    permission=PermissionLevel.MOD,
    handler=filesay,
)

COMMANDS: tuple[Command, ...] = (FILESAY_COMMAND,)
"""Commands that answer with fixed or repeated text."""

from __future__ import annotations

from datetime import timedelta
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

SAFE_MESSAGE_COUNT = 50
MAX_PYRAMID_WIDTH = SAFE_MESSAGE_COUNT // 2
MAX_SPAM_AMOUNT = SAFE_MESSAGE_COUNT
COMMANDS_DOC_URL = "https://example.com/chatbot/docs/commands.md"


def repeat_join(s: str, n: int, delimiter: str) -> str:
    """``s`` repeated ``n`` times, joined by ``delimiter``."""
    return delimiter.join([s] * max(n, 0))


def spam(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Send the text ``count`` times."""
    count_arg, text_arg = args[0], args[1]
    if not count_arg.present or not text_arg.present:
        raise BadUsageError
    count = count_arg.int_value
    channel = msg.message.channel
    if count > MAX_SPAM_AMOUNT:
        return [Message(channel=channel, text=f"Max spam amount is {MAX_SPAM_AMOUNT}")]
    out = Message(channel=channel, text=text_arg.string_value)
    return [out] * max(count, 0)


def pyramid(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Build a pyramid of the text, ``width`` words wide at its widest."""
    width_arg, text_arg = args[0], args[1]
    if not width_arg.present or not text_arg.present:
        raise BadUsageError
    width = width_arg.int_value
    channel = msg.message.channel
    if width > MAX_PYRAMID_WIDTH:
        return [Message(channel=channel, text=f"Max pyramid width is {MAX_PYRAMID_WIDTH}")]
    text = text_arg.string_value
    sizes = [*range(1, width + 1), *range(width - 1, 0, -1)]
    return [Message(channel=channel, text=repeat_join(text, n, " ")) for n in sizes]


def tuck(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Tuck someone into bed."""
    user_arg = args[0]
    if not user_arg.present:
        raise BadUsageError
    return [
        Message(
            channel=msg.message.channel,
            text=f"Bedge {msg.message.user} tucks {user_arg.string_value} into bed.",
        )
    ]


def _commands_link(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    return [Message(channel=msg.message.channel, text=f"Commands available here: {COMMANDS_DOC_URL}")]


def _good_night(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    return [Message(channel=msg.message.channel, text=f"FeelsOkayMan <3 gn {msg.message.user}")]


def _trihard(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    return [Message(channel=msg.message.channel, text="TriHard 7")]


COMMANDS_COMMAND = Command(
    name="commands",
    desc="Replies with a link to the commands.",
    handler=_commands_link,
)

GN_COMMAND = Command(name="gn", desc="Says good night.", handler=_good_night)

PYRAMID_COMMAND = Command(
    name="pyramid",
    desc=f"Makes a pyramid in chat. Max width {MAX_PYRAMID_WIDTH}.",
    params=(
        Param(name="width", type=ArgType.INT, required=True),
        Param(name="text", type=ArgType.STRING, required=True),
    ),
    permission=PermissionLevel.MOD,
    channel_cooldown=timedelta(seconds=30),
    disable_replies=True,
    handler=pyramid,
)

SPAM_COMMAND = Command(
    name="spam",
    desc=f"Sends a message many times. Max amount {MAX_SPAM_AMOUNT}.",
    params=(
        Param(name="count", type=ArgType.INT, required=True),
        Param(name="text", type=ArgType.VARIADIC, required=True),
    ),
    permission=PermissionLevel.MOD,
    channel_cooldown=timedelta(seconds=30),
    disable_replies=True,
    handler=spam,
)

TRIHARD_COMMAND = Command(
    name="trihard",
    aliases=("TriHard",),
    desc="Replies with TriHard 7.",
    handler=_trihard,
)

TUCK_COMMAND = Command(
    name="tuck",
    desc="Tuck someone to bed.",
    params=(Param(name="user", type=ArgType.USERNAME, required=True),),
    handler=tuck,
)

COMMANDS: tuple[Command, ...] = (
    COMMANDS_COMMAND,
    GN_COMMAND,
    PYRAMID_COMMAND,
    SPAM_COMMAND,
    TRIHARD_COMMAND,
    TUCK_COMMAND,
)
"""Commands that look up channels on Kick."""

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


class ChannelNotFoundError(LookupError):
    """The requested Kick channel does not exist."""


def _fetch(msg: IncomingMessage, args: Sequence[Arg]):
    channel_arg = args[0]
    if not channel_arg.present:
        raise BadUsageError
    target = channel_arg.string_value
    try:
        return target, msg.resources.clients.kick.fetch_channel(target)
    except ChannelNotFoundError:
        return target, None


def is_live(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report whether a Kick channel is live, and what it is streaming."""
    target, channel = _fetch(msg, args)
    reply_channel = msg.message.channel
    if channel is None:
        return [Message(channel=reply_channel, text=f"{target} does not exist")]
    stream = channel.livestream
    if stream is not None:
        category = stream.categories[0]
        text = (
            f"{channel.name} is currently live on Kick, "
            f"streaming {category.display_name} to {stream.viewer_count} viewers."
        )
    else:
        text = f"{channel.name} is not currently live on Kick."
    return [Message(channel=reply_channel, text=text)]


def title(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report a live Kick channel's stream title."""
    target, channel = _fetch(msg, args)
    reply_channel = msg.message.channel
    if channel is None:
        return [Message(channel=reply_channel, text=f"{target} does not exist")]
    if channel.livestream is None:
        return [
            Message(
                channel=reply_channel,
                text=(
                    "Currently Kick only returns the title for live channels, "
                    f"and {channel.name} is not currently live."
                ),
            )
        ]
    return [Message(channel=reply_channel, text=f"{channel.name}'s title on Kick: {channel.livestream.title}")]


IS_LIVE_COMMAND = Command(
    name="kickislive",
    aliases=("kislive",),
    desc="Replies with whether the Kick channel is currently live.",
    params=(Param(name="channel", type=ArgType.USERNAME, required=True),),
    permission=PermissionLevel.NORMAL,
    handler=is_live,
)

TITLE_COMMAND = Command(
    name="kicktitle",
    aliases=("ktitle",),
    desc="Replies with the title of the Kick channel. Currently only works if the channel is live.",
    params=(Param(name="channel", type=ArgType.USERNAME, required=True),),
    permission=PermissionLevel.NORMAL,
    handler=title,
)

COMMANDS: tuple[Command, ...] = (IS_LIVE_COMMAND, TITLE_COMMAND)
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Optional

import pytest

from chatcommands.basecommand import (
    Arg,
    ArgType,
    BadUsageError,
    IncomingMessage,
    Message,
    Resources,
)
from chatcommands.kick import IS_LIVE_COMMAND, TITLE_COMMAND, ChannelNotFoundError, is_live, title


@dataclass
class _Category:
    display_name: str


@dataclass
class _Livestream:
    title: str
    viewer_count: int
    categories: list = field(default_factory=list)


@dataclass
class _Channel:
    name: str
    livestream: Optional[_Livestream] = None


class _FakeKick:
    def __init__(self, channels, error=None):
        self.channels = channels
        self.error = error

    def fetch_channel(self, name):
        if self.error is not None:
            raise self.error
        try:
            return self.channels[name]
        except KeyError:
            raise ChannelNotFoundError(name) from None


_CHANNELS = {
    "brucedropemoff": _Channel(
        name="brucedropemoff",
        livestream=_Livestream(
            title="DEO COOKOFF MAY THE BEST DISH WIN! 🗣️ #DEO4L",
            viewer_count=15274,
            categories=[_Category("Just Chatting")],
        ),
    ),
    "xqc": _Channel(name="xqc"),
}


def _run(command, text, kick=None):
    msg = IncomingMessage(
        message=Message(text=text, user="user1", user_id="user1", channel="user2"),
        resources=Resources(clients=SimpleNamespace(kick=kick or _FakeKick(_CHANNELS))),
    )
    match = command.compile().match(msg.text_without_prefix())
    rest = " ".join(g or "" for g in match.groups()).strip()
    args = []
    for param in command.params:
        arg, rest = param.parse(rest)
        args.append(arg)
    return command.handler(msg, args)


@pytest.mark.parametrize("text", ["$kickislive brucedropemoff", "$kislive brucedropemoff"])
def test_is_live_live(text):
    assert _run(IS_LIVE_COMMAND, text) == [
        Message(
            text="brucedropemoff is currently live on Kick, streaming Just Chatting to 15274 viewers.",
            channel="user2",
        )
    ]


@pytest.mark.parametrize("text", ["$kickislive xqc", "$kislive xqc"])
def test_is_live_offline(text):
    assert _run(IS_LIVE_COMMAND, text) == [Message(text="xqc is not currently live on Kick.", channel="user2")]


@pytest.mark.parametrize("text", ["$kicktitle brucedropemoff", "$ktitle brucedropemoff"])
def test_title_live(text):
    assert _run(TITLE_COMMAND, text) == [
        Message(text="brucedropemoff's title on Kick: DEO COOKOFF MAY THE BEST DISH WIN! 🗣️ #DEO4L", channel="user2")
    ]


@pytest.mark.parametrize("text", ["$kicktitle xqc", "$ktitle xqc"])
def test_title_offline(text):
    assert _run(TITLE_COMMAND, text) == [
        Message(
            text="Currently Kick only returns the title for live channels, and xqc is not currently live.",
            channel="user2",
        )
    ]


@pytest.mark.parametrize("command", [IS_LIVE_COMMAND, TITLE_COMMAND])
def test_unknown_channel(command):
    assert _run(command, f"${command.name} nobody") == [Message(text="nobody does not exist", channel="user2")]


@pytest.mark.parametrize("handler", [is_live, title])
def test_missing_channel_arg(handler):
    msg = IncomingMessage(message=Message(channel="user2"))
    with pytest.raises(BadUsageError):
        handler(msg, [Arg(type=ArgType.USERNAME)])


def test_other_errors_propagate():
    with pytest.raises(ConnectionError):
        _run(IS_LIVE_COMMAND, "$kickislive xqc", kick=_FakeKick({}, error=ConnectionError("down")))
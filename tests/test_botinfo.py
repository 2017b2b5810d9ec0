from datetime import datetime, timedelta

import pytest

from chatcommands import botinfo
from chatcommands.basecommand import IncomingMessage, Message, Resources


class _FakePlatform:
    def name(self):
        return "Twitch"

    def username(self):
        return "fake-username"


class _FakeChannels:
    def __init__(self, channels):
        self._channels = channels

    def all(self):
        return list(self._channels)


def _msg(prefix="$", resources=None):
    return IncomingMessage(
        message=Message(text="", user="user1", user_id="user1", channel="user2"),
        prefix=prefix,
        resources=resources or Resources(platform=_FakePlatform()),
    )


def test_bot_info():
    got = botinfo.bot_info(_msg(), [])
    want = (
        "Beep boop, this is Airbot running as fake-username in user2 with prefix $ on Twitch."
        " Source code available ( $source )"
    )
    assert got == [Message(channel="user2", text=want)]


@pytest.mark.parametrize("text", ["bot", "botinfo", "info", "about", "ping"])
def test_bot_info_aliases_match(text):
    match = botinfo.BOT_INFO_COMMAND.compile().match(text)
    assert match.group(0) == text
    assert match.groups() == (None,)


def test_prefix():
    assert botinfo.prefix(_msg(prefix="??"), []) == [
        Message(channel="user2", text="This channel's prefix is ??")
    ]


@pytest.mark.parametrize(
    "text", ["does this bot thingy have one of them prefixes", "what is a prefix", "forsen prefix"]
)
def test_prefix_does_not_match_chatter(text):
    assert botinfo.PREFIX_COMMAND.compile().match(text) is None


def test_source():
    assert botinfo.source(_msg(), []) == [
        Message(channel="user2", text=f"Source code for Airbot available at {botinfo.SOURCE_URL}")
    ]


def test_stats_reports_activity(monkeypatch):
    monkeypatch.setenv("RUNNING_IN_DOCKER", "1")
    now = datetime.now()
    resources = Resources(
        platform=_FakePlatform(),
        cache={botinfo.PROCESSED_MESSAGES_KEY: [now, now - timedelta(seconds=120)]},
        channels=_FakeChannels(["user1", "user2"]),
    )
    text = botinfo.stats(_msg(resources=resources), [])[0].text
    assert text.startswith("Airbot running on ")
    assert " (Docker)" in text
    assert ", bot uptime: " in text
    assert text.endswith(", processed 1 messages in 2 channels in the last 60 seconds")


def test_stats_without_docker_or_activity(monkeypatch):
    monkeypatch.delenv("RUNNING_IN_DOCKER", raising=False)
    got = botinfo.stats(_msg(), [])
    assert got[0].channel == "user2"
    assert "(Docker)" not in got[0].text
    assert got[0].text.endswith("processed 0 messages in 0 channels in the last 60 seconds")


@pytest.mark.parametrize(
    "value,want",
    [("", ""), ("a", "A"), ("uBUNTU", "Ubuntu"), ("linux", "Linux"), ("Z", "Z")],
)
def test_sentence_case(value, want):
    assert botinfo.sentence_case(value) == want
import io
from datetime import datetime, timedelta

import pytest

from chatcommands import gamba
from chatcommands.admin import ChannelStore
from chatcommands.basecommand import (
    IncomingMessage,
    Message,
    PermissionLevel,
    Resources,
    UserUnknownError,
)
from chatcommands.gamba import GambaLedger
from chatcommands.handler import (
    CooldownStore,
    Handler,
    OutgoingMessage,
    all_commands,
    parse_args,
)


class FakePlatform:
    def __init__(self):
        self.users = {n: gamba.User(id=i, name=n) for i, n in enumerate(("user1", "user2", "user3"), start=1)}
        self.joined = []
        self.timeouts = []

    def name(self):
        return "Twitch"

    def username(self):
        return "fake-username"

    def user(self, name):
        try:
            return self.users[name]
        except KeyError:
            raise UserUnknownError(name) from None

    def join(self, channel, prefix):
        self.joined.append((channel, prefix))

    def leave(self, channel):
        pass

    def set_prefix(self, channel, prefix):
        pass

    def timeout(self, user, channel, duration):
        self.timeouts.append((user, channel, duration))


class BrokenPlatform(FakePlatform):
    def user(self, name):
        raise RuntimeError("backend down")


def make_handler(platform, clock=None, reader_bytes=bytes([3] * 8)):
    resources = Resources(
        platform=platform,
        cache={},
        ledger=GambaLedger(),
        channels=ChannelStore(),
        rand_reader=io.BytesIO(reader_bytes),
    )
    return Handler(resources=resources, clock=clock)


def incoming(text, platform, user="user1", channel="user2", prefix="$", level=PermissionLevel.NORMAL):
    return IncomingMessage(
        message=Message(text=text, user=user, user_id=user, channel=channel, id="msg-1"),
        prefix=prefix,
        permission_level=level,
        resources=Resources(platform=platform),
    )


def texts(out):
    return [o.message.text for o in out]


@pytest.fixture
def platform():
    return FakePlatform()


def test_cooldown_store_defaults_to_min():
    assert CooldownStore().last_run("channel", "user2", "spam") == datetime.min


def test_cooldown_store_mark_is_per_scope():
    store = CooldownStore()
    when = datetime(2020, 5, 15, 10, 7)
    store.mark("channel", "user2", "spam", when)
    assert store.last_run("channel", "user2", "spam") == when
    assert store.last_run("user", "user2", "spam") == datetime.min


def test_all_commands_unique_and_include_help():
    names = [c.name for c in all_commands()]
    assert len(names) == len(set(names))
    assert {"help", "duel", "join", "pyramid"} <= set(names)


def test_parse_args_reads_params():
    platform = FakePlatform()
    msg = incoming("$duel user2 25", platform)
    args = parse_args(msg, gamba.DUEL_COMMAND, gamba.DUEL_COMMAND.compile())
    assert args[0].string_value == "user2"
    assert args[1].int_value == 25


def test_parse_args_bad_int_not_present():
    platform = FakePlatform()
    msg = incoming("$duel user2 xx", platform)
    args = parse_args(msg, gamba.DUEL_COMMAND, gamba.DUEL_COMMAND.compile())
    assert args[0].present and not args[1].present


def test_parse_args_without_match_raises():
    msg = incoming("$tuck someone", FakePlatform())
    with pytest.raises(ValueError):
        parse_args(msg, gamba.DUEL_COMMAND, gamba.DUEL_COMMAND.compile())


def test_help_without_argument(platform):
    out = make_handler(platform).handle(incoming("$help", platform))
    assert texts(out) == ["For help with a command, use $help <command>. To see available commands, use $commands"]


@pytest.mark.parametrize(
    "text,want",
    [
        ("$help join", "[ $join ] Tells the bot to join your chat."),
        ("$help duel", "[ $duel ] Duels another chatter. They have 30 seconds to accept or decline. User-specific cooldown: 5s"),
        ("$help pyramid", "[ $pyramid ] Makes a pyramid in chat. Max width 25. Channel-wide cooldown: 30s"),
    ],
)
def test_help_for_command(platform, text, want):
    out = make_handler(platform).handle(incoming(text, platform))
    assert texts(out) == [want]
    assert out[0].message.channel == "user2"


def test_help_for_unknown_command(platform):
    assert make_handler(platform).handle(incoming("$help nosuchthing", platform)) == []


def test_custom_prefix_and_reply(platform):
    out = make_handler(platform).handle(incoming("??prefix", platform, prefix="??"))
    assert out == [OutgoingMessage(message=Message(channel="user2", text="This channel's prefix is ??"), reply_to_id="msg-1")]


@pytest.mark.parametrize(
    "text",
    [";prefix", "does this bot thingy have one of them prefixes", "what is a prefix", "forsen prefix"],
)
def test_messages_without_prefix_ignored(platform, text):
    assert make_handler(platform).handle(incoming(text, platform)) == []


def test_bad_usage_replies_with_usage(platform):
    out = make_handler(platform).handle(incoming("$tuck", platform))
    assert texts(out) == ["Usage: $tuck <user>"]
    assert out[0].reply_to_id == "msg-1"


def test_tuck(platform):
    out = make_handler(platform).handle(incoming("$tuck someone", platform))
    assert texts(out) == ["Bedge user1 tucks someone into bed."]


def test_permission_denied(platform):
    assert make_handler(platform).handle(incoming("$spam 3 yo", platform)) == []


def test_spam_disables_replies(platform):
    out = make_handler(platform).handle(incoming("$spam 3 yo", platform, level=PermissionLevel.MOD))
    assert texts(out) == ["yo", "yo", "yo"]
    assert all(o.reply_to_id == "" for o in out)


def test_channel_cooldown_blocks_then_expires(platform):
    now = [datetime(2020, 5, 15, 10, 7)]
    handler = make_handler(platform, clock=lambda: now[0])
    first = handler.handle(incoming("$pyramid 2 yo", platform, level=PermissionLevel.MOD))
    assert texts(first) == ["yo", "yo yo", "yo"]
    assert handler.handle(incoming("$pyramid 2 yo", platform, level=PermissionLevel.MOD)) == []
    now[0] += timedelta(seconds=31)
    again = handler.handle(incoming("$pyramid 2 yo", platform, level=PermissionLevel.MOD))
    assert texts(again) == texts(first)


def test_bad_usage_does_not_set_channel_cooldown(platform):
    handler = make_handler(platform)
    for _ in range(2):
        out = handler.handle(incoming("$pyramid", platform, level=PermissionLevel.MOD))
        assert texts(out) == ["Usage: $pyramid <width> <text>"]


def test_user_cooldown(platform):
    handler = make_handler(platform, reader_bytes=bytes([1, 1]))
    handler.resources.ledger.add_transaction("FAKE - TEST", 1, 50)
    out = handler.handle(incoming("$roulette 10", platform))
    assert texts(out) == ["GAMBA user1 won 10 points in roulette and now has 60 points!"]
    assert handler.handle(incoming("$roulette 10", platform)) == []


def test_reply_only_to_same_channel(platform):
    out = make_handler(platform).handle(incoming("$join", platform))
    assert texts(out) == [
        "Successfully joined channel user1 with prefix $",
        "Successfully joined channel! (prefix: $ ) For all commands, type $commands.",
    ]
    assert [o.reply_to_id for o in out] == ["msg-1", ""]
    assert [o.message.channel for o in out] == ["user2", "user1"]


def test_botslowmode_owner(platform):
    handler = make_handler(platform)
    out = handler.handle(incoming("$botslowmode on", platform, level=PermissionLevel.OWNER))
    assert texts(out) == ["Enabled bot slowmode on Twitch"]
    status = handler.handle(incoming("$botslowmode", platform, level=PermissionLevel.OWNER))
    assert texts(status) == ["Bot slowmode is currently enabled on Twitch"]


def test_unknown_sender_still_handled(platform):
    out = make_handler(platform).handle(incoming("$gn", platform, user="stranger"))
    assert texts(out) == ["FeelsOkayMan <3 gn stranger"]


def test_vanish_times_out_sender(platform):
    out = make_handler(platform).handle(incoming("$vanish", platform))
    assert out == []
    assert platform.timeouts == [("user1", "user2", timedelta(seconds=1))]


def test_platform_errors_propagate():
    platform = BrokenPlatform()
    with pytest.raises(RuntimeError):
        make_handler(platform).handle(incoming("$gn", platform))


def test_resources_are_injected(platform):
    handler = make_handler(platform)
    msg = incoming("$gn", platform)
    handler.handle(msg)
    assert msg.resources.ledger is handler.resources.ledger
    assert msg.resources.platform is platform
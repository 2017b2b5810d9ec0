import pytest

from chatcommands.basecommand import BadUsageError, IncomingMessage, Message
from chatcommands.echo import (
    COMMANDS,
    COMMANDS_DOC_URL,
    PYRAMID_COMMAND,
    repeat_join,
)


def _find(name):
    return next(c for c in COMMANDS if c.name == name)


def _run(command, text, user="user1", channel="user2"):
    msg = IncomingMessage(message=Message(text=text, user=user, user_id=user, channel=channel), prefix="$")
    match = command.compile().match(msg.text_without_prefix())
    rest = " ".join(g or "" for g in match.groups()).strip()
    args = []
    for param in command.params:
        arg, rest = param.parse(rest)
        args.append(arg)
    return command.handler(msg, args)


def _msgs(*texts):
    return [Message(text=t, channel="user2") for t in texts]


def test_commands_link():
    assert _run(_find("commands"), "$commands") == _msgs(f"Commands available here: {COMMANDS_DOC_URL}")


def test_gn():
    assert _run(_find("gn"), "$gn") == _msgs("FeelsOkayMan <3 gn user1")


def test_spam():
    assert _run(_find("spam"), "$spam 3 yo") == _msgs("yo", "yo", "yo")


def test_spam_variadic_text():
    assert _run(_find("spam"), "$spam 2 hello world") == _msgs("hello world", "hello world")


def test_spam_too_many():
    assert _run(_find("spam"), "$spam 51 yo") == _msgs("Max spam amount is 50")


def test_pyramid():
    assert _run(_find("pyramid"), "$pyramid 5 yo") == _msgs(
        "yo",
        "yo yo",
        "yo yo yo",
        "yo yo yo yo",
        "yo yo yo yo yo",
        "yo yo yo yo",
        "yo yo yo",
        "yo yo",
        "yo",
    )


def test_pyramid_too_wide():
    assert _run(_find("pyramid"), "$pyramid 1000 yo") == _msgs("Max pyramid width is 25")


def test_pyramid_bad_width():
    with pytest.raises(BadUsageError):
        _run(_find("pyramid"), "$pyramid xx yo")


def test_pyramid_help():
    assert PYRAMID_COMMAND.help() == "Makes a pyramid in chat. Max width 25. Channel-wide cooldown: 30s"


@pytest.mark.parametrize("text", ["$trihard", "$TriHard"])
def test_trihard(text):
    assert _run(_find("trihard"), text) == _msgs("TriHard 7")


def test_tuck_without_user():
    command = _find("tuck")
    with pytest.raises(BadUsageError):
        _run(command, "$tuck")
    assert command.usage("$") == "$tuck <user>"


def test_tuck():
    assert _run(_find("tuck"), "$tuck someone") == _msgs("Bedge user1 tucks someone into bed.")


@pytest.mark.parametrize(
    "s, n, delimiter, want",
    [("yo", 3, " ", "yo yo yo"), ("a", 1, ",", "a"), ("a", 0, ",", ""), ("ab", 2, "-", "ab-ab")],
)
def test_repeat_join(s, n, delimiter, want):
    assert repeat_join(s, n, delimiter) == want
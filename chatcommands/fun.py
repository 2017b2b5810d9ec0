"""Fun commands: random numbers, fortunes and lookups."""

from __future__ import annotations

import functools
import logging
import math
from pathlib import Path
from typing import Iterable, Sequence

from chatcommands.basecommand import (
    Arg,
    ArgType,
    BadUsageError,
    Command,
    IncomingMessage,
    Message,
    Param,
    PermissionLevel,
    first_arg_or_username,
    random_int,
)

logger = logging.getLogger(__name__)

COCK_MAX_LENGTH = 14
FORTUNE_MAX_LENGTH = 480
FORTUNES_FILE = Path(__file__).with_name("fortunes.txt")
IQ_MEAN = 100.0
IQ_STDDEV = 15.0


def truncate(lines: Iterable[str], max_length: int) -> list[str]:
    """Each line cut down to at most ``max_length`` characters."""
    return [line[:max_length] for line in lines]


def read_lines_without_blanks(text: str) -> list[str]:
    """The lines of ``text``, leaving out empty ones."""
    return [line for line in text.split("\n") if line]


@functools.lru_cache(maxsize=None)
def _load_fortunes(path: Path) -> tuple[str, ...]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ()
    return tuple(truncate(read_lines_without_blanks(text), FORTUNE_MAX_LENGTH))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def bible_verse(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Look up a Bible passage; nothing is sent if the lookup fails."""
    book_arg, chapter_verse_arg = args[0], args[1]
    if not book_arg.present or not chapter_verse_arg.present:
        raise BadUsageError
    query = f"{book_arg.string_value} {chapter_verse_arg.string_value}"
    try:
        verses = msg.resources.clients.bible.fetch_verses(query)
    except Exception as exc:  # the lookup is best-effort
        logger.warning("Failed to look up Bible verses: %s", exc)
        return []
    return [Message(channel=msg.message.channel, text=f"[{verses.reference}]: {verses.text}")]


def cock(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report a random length for the target (or the sender)."""
    target = first_arg_or_username(args, msg)
    length = random_int(msg.resources.rand_reader, COCK_MAX_LENGTH + 1)
    return [Message(channel=msg.message.channel, text=f"{target}'s cock is {length} inches long")]


def fortune(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Reply with a random fortune read from the fortunes file."""
    fortunes = _load_fortunes(FORTUNES_FILE)
    if not fortunes:
        raise LookupError(f"no fortunes available in {FORTUNES_FILE}")
    index = random_int(msg.resources.rand_reader, len(fortunes))
    return [Message(channel=msg.message.channel, text=fortunes[index])]


def iq(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report a normally distributed IQ for the target (or the sender)."""
    target = first_arg_or_username(args, msg)
    value = msg.resources.rand_source.gauss(IQ_MEAN, IQ_STDDEV)
    return [Message(channel=msg.message.channel, text=f"{target}'s IQ is {_round_half_away(value)}")]


_SHIP_SUFFIXES = (
    (90, "invite me to the wedding please 😍"),
    (80, "oh 😳"),
    (60, "worth a shot ;)"),
    (40, "it's a toss-up :/"),
    (20, "not sure about this one... :("),
)
_SHIP_FALLBACK = "don't even think about it DansGame"


def ship(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report how compatible two people are."""
    first_arg, second_arg = args[0], args[1]
    if not first_arg.present or not second_arg.present:
        raise BadUsageError
    percent = random_int(msg.resources.rand_reader, 101)
    suffix = next((text for floor, text in _SHIP_SUFFIXES if percent >= floor), _SHIP_FALLBACK)
    text = (
        f"{first_arg.string_value} and {second_arg.string_value} "
        f"have a {percent}% compatibility, {suffix}"
    )
    return [Message(channel=msg.message.channel, text=text)]


BIBLE_VERSE_COMMAND = Command(
    name="bibleverse",
    aliases=("bv",),
    desc="Looks up a bible verse.",
    params=(
        Param(name="book", type=ArgType.STRING, required=True),
        Param(name="chapter:verse", type=ArgType.STRING, required=True),
    ),
    permission=PermissionLevel.NORMAL,
    handler=bible_verse,
)

COCK_COMMAND = Command(
    name="cock",
    aliases=("kok",),
    desc="Tells you the length :)",
    params=(Param(name="user", type=ArgType.USERNAME, required=False),),
    permission=PermissionLevel.NORMAL,
    handler=cock,
)

FORTUNE_COMMAND = Command(
    name="fortune",
    desc="Replies with a fortune.",
    permission=PermissionLevel.NORMAL,
    handler=fortune,
)

IQ_COMMAND = Command(
    name="iq",
    desc="Tells you someone's IQ",
    params=(Param(name="user", type=ArgType.USERNAME, required=False),),
    permission=PermissionLevel.NORMAL,
    handler=iq,
)

SHIP_COMMAND = Command(
    name="ship",
    desc="Tells you the compatibility of two people.",
    params=(
        Param(name="first-person", type=ArgType.USERNAME, required=True),
        Param(name="second-person", type=ArgType.USERNAME, required=True),
    ),
    permission=PermissionLevel.NORMAL,
    handler=ship,
)

COMMANDS: tuple[Command, ...] = (
    BIBLE_VERSE_COMMAND,
    COCK_COMMAND,
    FORTUNE_COMMAND,
    IQ_COMMAND,
    SHIP_COMMAND,
)
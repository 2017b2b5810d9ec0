"""Shared building blocks for chat commands: parameters, arguments, messages and commands."""

from __future__ import annotations

import enum
import os
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, BinaryIO, Callable, MutableMapping, Optional, Sequence


class ArgType(enum.Enum):
    """The kind of value a command parameter accepts."""

    STRING = "string"
    INT = "int"
    BOOLEAN = "boolean"
    USERNAME = "username"
    VARIADIC = "variadic"


_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_TRUE_WORDS = frozenset({"true", "t", "1", "on", "yes", "y", "enable", "enabled"})
_FALSE_WORDS = frozenset({"false", "f", "0", "off", "no", "n", "disable", "disabled"})


@dataclass(frozen=True)
class Arg:
    """A parsed argument; ``present`` is false when it was missing or malformed."""

    present: bool = False
    type: ArgType = ArgType.STRING
    string_value: str = ""
    int_value: int = 0
    bool_value: bool = False


@dataclass(frozen=True)
class Param:
    """A parameter a command takes."""

    name: str
    type: ArgType = ArgType.STRING
    required: bool = False
    usage: str = ""

    def usage_for_doc_string(self) -> str:
        """Text describing this parameter in usage strings."""
        return self.usage or self.name

    def parse(self, text: str) -> tuple[Arg, str]:
        """Parse this parameter from the front of ``text``; return the arg and the remaining text."""
        if self.type is ArgType.VARIADIC:
            value = text.strip()
            return Arg(present=bool(value), type=self.type, string_value=value), ""
        parts = text.split(maxsplit=1)
        if not parts:
            return Arg(type=self.type), ""
        token = parts[0]
        rest = parts[1] if len(parts) > 1 else ""
        return self._convert(token), rest

    def _convert(self, token: str) -> Arg:
        if self.type is ArgType.USERNAME:
            name = token.lstrip("@")
            return Arg(present=bool(name), type=self.type, string_value=name)
        if self.type is ArgType.INT:
            if _INT_PATTERN.fullmatch(token):
                value = int(token)
                if _INT_MIN <= value <= _INT_MAX:
                    return Arg(present=True, type=self.type, string_value=token, int_value=value)
            return Arg(type=self.type)
        if self.type is ArgType.BOOLEAN:
            word = token.lower()
            if word in _TRUE_WORDS:
                return Arg(present=True, type=self.type, string_value=token, bool_value=True)
            if word in _FALSE_WORDS:
                return Arg(present=True, type=self.type, string_value=token, bool_value=False)
            return Arg(type=self.type)
        return Arg(present=True, type=self.type, string_value=token)


class PermissionLevel(enum.IntEnum):
    """How much a user is trusted; higher levels include the lower ones."""

    NORMAL = 0
    MOD = 1
    ADMIN = 2
    OWNER = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


def authorized(level: PermissionLevel, required: PermissionLevel) -> bool:
    """Whether a user at ``level`` may run something that needs ``required``."""
    return level >= required


@dataclass(frozen=True)
class Message:
    """A chat message."""

    text: str = ""
    channel: str = ""
    user: str = ""
    user_id: str = ""
    id: str = ""
    time: Optional[datetime] = None


class _SystemRandomReader:
    """A byte source backed by the operating system's randomness."""

    def read(self, n: int = -1) -> bytes:
        return os.urandom(max(n, 0))


@dataclass
class Resources:
    """Everything a command may need while it runs.

    ``platform`` is the chat platform the message came from; ``clients`` holds
    API clients (``kick``, ``pastebin`` and so on); ``ledger`` and ``channels``
    are the stores for points and joined channels.
    """

    platform: Any = None
    clients: Any = None
    cache: MutableMapping[str, Any] = field(default_factory=dict)
    all_platforms: dict[str, Any] = field(default_factory=dict)
    new_config_source: Optional[Callable[[], Any]] = None
    rand_reader: BinaryIO = field(default_factory=_SystemRandomReader)  # type: ignore[assignment]
    rand_source: random.Random = field(default_factory=random.Random)
    ledger: Any = None
    channels: Any = None


@dataclass
class IncomingMessage:
    """A message received from a platform, with the context needed to handle it."""

    message: Message
    prefix: str = "$"
    permission_level: PermissionLevel = PermissionLevel.NORMAL
    resources: Resources = field(default_factory=Resources)

    def text_without_prefix(self) -> str:
        """The message text, trimmed, with the channel prefix removed."""
        text = self.message.text.strip()
        if self.prefix and text.startswith(self.prefix):
            text = text[len(self.prefix):]
        return text


class BadUsageError(Exception):
    """The command was used incorrectly, e.g. with missing arguments."""


class UserUnknownError(LookupError):
    """The user has never been seen by the bot."""


CommandHandler = Callable[[IncomingMessage, Sequence[Arg]], list]


def _format_duration(duration: timedelta) -> str:
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        whole, frac = divmod(micros, 1000)
        text = f"{whole}.{frac:03d}".rstrip("0").rstrip(".")
        return f"{sign}{text}ms"
    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds, frac = divmod(rest, 1_000_000)
    secs = f"{seconds}.{frac:06d}".rstrip("0").rstrip(".") if frac else str(seconds)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


@dataclass(frozen=True, kw_only=True)
class Command:
    """A command the bot answers to.

    Only the last parameter may be optional.
    """

    name: str
    handler: Optional[CommandHandler] = None
    desc: str = ""
    aliases: tuple[str, ...] = ()
    params: tuple[Param, ...] = ()
    permission: PermissionLevel = PermissionLevel.NORMAL
    channel_cooldown: timedelta = timedelta(0)
    user_cooldown: timedelta = timedelta(0)
    disable_replies: bool = False

    def compile(self) -> re.Pattern[str]:
        """The pattern matching this command in text that has no prefix."""
        names = "|".join(re.escape(n) for n in (self.name, *self.aliases))
        groups = "".join(
            r"(?:\s+(.*))?" if p.type is ArgType.VARIADIC else r"(?:\s+(\S*))?"
            for p in self.params
        ) or r"(?:\s+(\S*))?"
        return re.compile(rf"^\s*(?:{names})(?:\s+|(?:{groups}))?\s*$", re.ASCII)

    def usage(self, prefix: str) -> str:
        """Usage line for the command, e.g. ``$duel <user> <amount>``."""
        parts = [prefix + self.name]
        for param in self.params:
            doc = param.usage_for_doc_string()
            parts.append(f"<{doc}>" if param.required else f"[{doc}]")
        return " ".join(parts)

    def help(self) -> str:
        """Description of the command, including its cooldowns."""
        if not self.desc:
            return "<no help information found>"
        channel_cd, user_cd = self.channel_cooldown, self.user_cooldown
        if not channel_cd and not user_cd:
            return self.desc
        text = self.desc if self.desc.endswith(" ") else self.desc + " "
        zero = timedelta(0)
        if channel_cd > zero and user_cd > zero:
            cooldowns = [
                f"Channel-wide cooldown: {_format_duration(channel_cd)}, "
                f"user-specific cooldown: {_format_duration(user_cd)}"
            ]
        else:
            cooldowns = []
            if channel_cd > zero:
                cooldowns.append(f"Channel-wide cooldown: {_format_duration(channel_cd)}")
            if user_cd > zero:
                cooldowns.append(f"User-specific cooldown: {_format_duration(user_cd)}")
        return text + ", ".join(cooldowns)


def _read_exact(reader: Any, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = reader.read(n - len(data))
        if not chunk:
            raise EOFError("random source exhausted")
        data += chunk
    return data


def random_int(reader: Any, n: int) -> int:
    """A uniform random integer in ``[0, n)`` drawn from the bytes of ``reader``."""
    if n <= 0:
        raise ValueError("n must be positive")
    bits = (n - 1).bit_length()
    if bits == 0:
        return 0
    nbytes = (bits + 7) // 8
    mask = (1 << (bits % 8 or 8)) - 1
    while True:
        data = _read_exact(reader, nbytes)
        value = int.from_bytes(bytes([data[0] & mask]) + data[1:], "big")
        if value < n:
            return value


def first_arg_or_username(args: Sequence[Arg], msg: IncomingMessage) -> str:
    """The first argument if given, otherwise the sender's name."""
    if args and args[0].present:
        return args[0].string_value
    return msg.message.user


def first_arg_or_channel(args: Sequence[Arg], msg: IncomingMessage) -> str:
    """The first argument if given, otherwise the message's channel."""
    if args and args[0].present:
        return args[0].string_value
    return msg.message.channel
"""Gambling commands: points, roulette, giving points and duels."""

from __future__ import annotations

import itertools
import logging
import math
import re
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from chatcommands.basecommand import (
    Arg,
    ArgType,
    BadUsageError,
    Command,
    IncomingMessage,
    Message,
    Param,
    PermissionLevel,
    UserUnknownError,
    first_arg_or_username,
    random_int,
)

logger = logging.getLogger(__name__)

DUEL_PENDING_SECS = 30
DUEL_PENDING_DURATION = timedelta(seconds=DUEL_PENDING_SECS)

_INT_TEXT = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class User:
    """A chatter known to the bot."""

    id: int
    name: str


@dataclass(frozen=True)
class Transaction:
    """A change to a user's points."""

    game: str
    user_id: int
    delta: int
    created_at: datetime


@dataclass(frozen=True)
class Duel:
    """A duel between an initiating user and a target."""

    id: int
    user: User
    target: User
    amount: int
    created_at: datetime
    pending: bool = True
    accepted: bool = False
    won: bool = False


class GambaLedger:
    """In-memory store of point transactions and duels."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._transactions: list[Transaction] = []
        self._duels: dict[int, Duel] = {}
        self._duel_ids = itertools.count(1)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        with self._lock:
            return tuple(self._transactions)

    @property
    def duels(self) -> tuple[Duel, ...]:
        with self._lock:
            return tuple(self._duels.values())

    def add_transaction(self, game: str, user_id: int, delta: int) -> Transaction:
        """Record a change of ``delta`` points for a user."""
        txn = Transaction(game=game, user_id=user_id, delta=delta, created_at=self._clock())
        with self._lock:
            self._transactions.append(txn)
        return txn

    def create_duel(self, user: User, target: User, amount: int) -> Duel:
        """Record a new pending duel."""
        with self._lock:
            duel = Duel(
                id=next(self._duel_ids),
                user=user,
                target=target,
                amount=amount,
                created_at=self._clock(),
            )
            self._duels[duel.id] = duel
        return duel

    def save_duel(self, duel: Duel) -> None:
        """Store the new state of an existing duel."""
        with self._lock:
            if duel.id not in self._duels:
                raise KeyError(f"unknown duel {duel.id}")
            self._duels[duel.id] = duel

    def _pending(self, within: timedelta, matches: Callable[[Duel], bool]) -> list[Duel]:
        cutoff = self._clock() - within
        with self._lock:
            return [
                d
                for d in sorted(self._duels.values(), key=lambda d: d.id)
                if d.pending and d.created_at > cutoff and matches(d)
            ]

    def inbound_pending_duels(self, user_id: int, within: timedelta) -> list[Duel]:
        """Pending duels against the user started within the given time."""
        return self._pending(within, lambda d: d.target.id == user_id)

    def outbound_pending_duels(self, user_id: int, within: timedelta) -> list[Duel]:
        """Pending duels started by the user within the given time."""
        return self._pending(within, lambda d: d.user.id == user_id)


def fetch_user_points(ledger: GambaLedger, user_id: int) -> int:
    """The user's current points: the sum of their transactions."""
    return sum(t.delta for t in ledger.transactions if t.user_id == user_id)


def _reply(msg: IncomingMessage, text: str) -> list[Message]:
    return [Message(channel=msg.message.channel, text=text)]


def _never_seen(msg: IncomingMessage, name: str) -> list[Message]:
    return _reply(msg, f"{name} has never been seen by {msg.resources.platform.username()}")


def accept(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Accept every duel pending against the sender and settle it."""
    ledger: GambaLedger = msg.resources.ledger
    user = msg.resources.platform.user(msg.message.user)
    pending = ledger.inbound_pending_duels(user.id, DUEL_PENDING_DURATION)
    if not pending:
        return _reply(msg, "There are no duels pending against you.")

    out = []
    for duel_ in pending:
        initiator_won = random_int(msg.resources.rand_reader, 2) == 1
        winner, loser = (duel_.user, duel_.target) if initiator_won else (duel_.target, duel_.user)
        ledger.save_duel(replace(duel_, won=initiator_won, accepted=True, pending=False))
        ledger.add_transaction("Duel", winner.id, duel_.amount)
        ledger.add_transaction("Duel", loser.id, -duel_.amount)
        out.append(
            Message(
                channel=msg.message.channel,
                text=f"{winner.name} won the duel with {loser.name} and wins {duel_.amount} points!",
            )
        )
    return out


def decline(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Decline every duel pending against the sender."""
    ledger: GambaLedger = msg.resources.ledger
    user = msg.resources.platform.user(msg.message.user)
    pending = ledger.inbound_pending_duels(user.id, DUEL_PENDING_DURATION)
    if not pending:
        return _reply(msg, "There are no duels pending against you.")
    for duel_ in pending:
        ledger.save_duel(replace(duel_, accepted=False, pending=False))
    return _reply(msg, "Declined duel.")


def duel(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Start a duel against another chatter."""
    target_arg, points_arg = args[0], args[1]
    if not target_arg.present or not points_arg.present:
        raise BadUsageError
    target, amount = target_arg.string_value, points_arg.int_value

    if target == msg.message.user:
        return _reply(msg, "You can't duel yourself Pepega")
    if amount == 0:
        return _reply(msg, "You must duel at least 1 point.")
    if amount < 1:
        return _reply(msg, "nice try forsenCD")

    platform = msg.resources.platform
    ledger: GambaLedger = msg.resources.ledger
    try:
        target_user = platform.user(target)
        user = platform.user(msg.message.user)
    except UserUnknownError:
        return _never_seen(msg, target)

    user_points = fetch_user_points(ledger, user.id)
    if amount > user_points:
        return _reply(msg, f"You don't have enough points for that duel (you have {user_points} points)")
    target_points = fetch_user_points(ledger, target_user.id)
    if amount > target_points:
        return _reply(
            msg, f"{target} don't have enough points for that duel (they have {target_points} points)"
        )

    if ledger.outbound_pending_duels(user.id, DUEL_PENDING_DURATION):
        return _reply(msg, "You already have a duel pending.")
    if ledger.inbound_pending_duels(target_user.id, DUEL_PENDING_DURATION):
        return _reply(msg, "That chatter already has a duel pending.")

    ledger.create_duel(user, target_user, amount)
    return _reply(
        msg,
        f"@{target}, {msg.message.user} has started a duel for {amount} points! "
        f"Type {msg.prefix}accept or {msg.prefix}decline in the next {DUEL_PENDING_SECS} seconds!",
    )


def give_points(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Move points from the sender to another chatter."""
    if len(args) < 2:
        raise BadUsageError
    target_arg, points_arg = args[0], args[1]
    if not target_arg.present or not points_arg.present:
        raise BadUsageError
    target, amount = target_arg.string_value, points_arg.int_value

    if target == msg.message.user:
        return _reply(msg, "You can't give points to yourself Pepega")
    if amount == 0:
        return _reply(msg, "You must give at least 1 point.")
    if amount < 1:
        return _reply(msg, "nice try forsenCD")

    platform = msg.resources.platform
    ledger: GambaLedger = msg.resources.ledger
    try:
        target_user = platform.user(target)
        user = platform.user(msg.message.user)
    except UserUnknownError:
        return _never_seen(msg, target)

    user_points = fetch_user_points(ledger, user.id)
    if amount > user_points:
        return _reply(msg, f"You can't give more points than you have (you have {user_points} points)")

    ledger.add_transaction("GivePoints", user.id, -amount)
    ledger.add_transaction("GivePoints", target_user.id, amount)
    return _reply(msg, f"{user.name} gave {amount} points to {target_user.name} FeelsOkayMan <3")


def points(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Report how many points someone (or the sender) has."""
    target = first_arg_or_username(args, msg)
    try:
        user = msg.resources.platform.user(target)
    except UserUnknownError:
        return _never_seen(msg, target)
    count = fetch_user_points(msg.resources.ledger, user.id)
    return _reply(msg, f"GAMBA {target} has {count} points")


def _parse_int(text: str, what: str) -> int:
    if not _INT_TEXT.fullmatch(text):
        raise ValueError(f"failed to parse roulette {what} {text!r}")
    return int(text)


def roulette(msg: IncomingMessage, args: Sequence[Arg]) -> list[Message]:
    """Bet an amount, a percentage or all of the sender's points on a coin flip."""
    amount_arg = args[0]
    if not amount_arg.present:
        raise BadUsageError

    try:
        user = msg.resources.platform.user(msg.message.user)
    except UserUnknownError:
        return _never_seen(msg, msg.message.user)

    ledger: GambaLedger = msg.resources.ledger
    current = fetch_user_points(ledger, user.id)

    amount_text = amount_arg.string_value
    if amount_text == "all":
        amount = current
    elif amount_text.endswith("%"):
        percent = _parse_int(amount_text.replace("%", "", 1), "amount percent")
        amount = math.floor(float(current) * (float(percent) / 100))
    else:
        amount = _parse_int(amount_text, "amount")

    if amount < 0:
        return _reply(msg, "nice try forsenCD")
    if amount > current:
        return _reply(msg, f"{msg.message.user}: You don't have enough points for that (current: {current})")

    win = random_int(msg.resources.rand_reader, 2) == 1
    delta = amount if win else -amount
    new_points = current + delta
    ledger.add_transaction("Roulette", user.id, delta)

    if win:
        text = f"GAMBA {msg.message.user} won {delta} points in roulette and now has {new_points} points!"
    else:
        text = f"GAMBA {msg.message.user} lost {-delta} points in roulette and now has {new_points} points!"
    return _reply(msg, text)


ACCEPT_COMMAND = Command(
    name="accept",
    desc="Accepts a duel.",
    permission=PermissionLevel.NORMAL,
    handler=accept,
)

DECLINE_COMMAND = Command(
    name="decline",
    desc="Declines a duel.",
    permission=PermissionLevel.NORMAL,
    handler=decline,
)

DUEL_COMMAND = Command(
    name="duel",
    desc=f"Duels another chatter. They have {DUEL_PENDING_SECS} seconds to accept or decline.",
    params=(
        Param(name="user", type=ArgType.USERNAME, required=True),
        Param(name="amount", type=ArgType.INT, required=True),
    ),
    permission=PermissionLevel.NORMAL,
    user_cooldown=timedelta(seconds=5),
    handler=duel,
)

GIVE_POINTS_COMMAND = Command(
    name="givepoints",
    aliases=("gp",),
    desc="Give points to another chatter.",
    params=(
        Param(name="user", type=ArgType.USERNAME, required=True),
        Param(name="amount", type=ArgType.INT, required=True),
    ),
    permission=PermissionLevel.NORMAL,
    handler=give_points,
)

POINTS_COMMAND = Command(
    name="points",
    aliases=("p",),
    desc="Checks how many points someone has.",
    params=(Param(name="user", type=ArgType.USERNAME, required=False),),
    permission=PermissionLevel.NORMAL,
    handler=points,
)

ROULETTE_COMMAND = Command(
    name="roulette",
    aliases=("r",),
    desc="Roulettes some points.",
    params=(Param(name="amount", type=ArgType.STRING, required=True, usage="amount|percent%|all"),),
    permission=PermissionLevel.NORMAL,
    user_cooldown=timedelta(seconds=5),
    handler=roulette,
)

COMMANDS: tuple[Command, ...] = (
    ACCEPT_COMMAND,
    DECLINE_COMMAND,
    DUEL_COMMAND,
    GIVE_POINTS_COMMAND,
    POINTS_COMMAND,
    ROULETTE_COMMAND,
)
# chatcommands

The command layer of a chat bot. It defines the bot's commands and parses
their arguments. It checks permission levels and cooldowns, and it returns
the messages to send back. It does not connect to any chat service itself.
You supply a platform object and API clients, and the package calls them.

## Modules

- `chatcommands.basecommand` holds the building blocks:
  - `Command`, with `compile()`, `usage(prefix)` and `help()`.
  - `Param` and `Arg`. The argument types are listed in `ArgType`: string, int, boolean, username and variadic.
  - `PermissionLevel` (`NORMAL`, `MOD`, `ADMIN`, `OWNER`) and `authorized(level, required)`.
  - `Message`, `IncomingMessage` (with `text_without_prefix()`) and `Resources`.
  - `BadUsageError` and `UserUnknownError`.
  - The helpers `random_int(reader, n)`, `first_arg_or_username` and `first_arg_or_channel`.
- `chatcommands.echo` has the commands `commands`, `gn`, `pyramid`, `spam`, `trihard` and `tuck`, and the helper `repeat_join`.
- `chatcommands.fun` has `bible_verse`, `cock`, `fortune`, `iq` and `ship`.
- `chatcommands.botinfo` has `bot_info`, `prefix`, `source` and `stats`. `stats` reads host figures through psutil.
- `chatcommands.gamba` keeps points and duels in memory in `GambaLedger`. Its commands are `accept`, `decline`, `duel`, `give_points`, `points` and `roulette`. `fetch_user_points` sums a user's transactions.
- `chatcommands.admin` keeps joined channels in memory in `ChannelStore`.
  - Its commands are `bot_slowmode`, `echo`, `join`, `join_other`, `joined`, `leave`, `leave_other`, `restart_bot` and `set_prefix`.
  - `restart_bot` only sets the `RESTART_REQUESTED` event a moment later. Whatever runs the bot has to act on it.
- `chatcommands.kick` has `is_live` and `title`, and `ChannelNotFoundError`.
- `chatcommands.moderation` has `vanish`.
- `chatcommands.bulk` has `filesay`.
- `chatcommands.handler` dispatches messages:
  - `Handler.handle(msg)` runs every command that matches the message.
  - It enforces permission levels and per-channel and per-user cooldowns. The cooldowns are kept in a `CooldownStore`.
  - It returns a list of `OutgoingMessage`. Each one is a reply to the incoming message when it goes to the same channel, unless the command turns replies off.
  - A `BadUsageError` from a command becomes a `Usage: ...` message.
  - `all_commands()` lists every command, and `help_command` shows the help for one of them.

## What you supply

The `Resources` given to `Handler` carries these:

- `platform`: an object with `name()`, `username()`, `user(name)`, `join(channel, prefix)`, `leave(channel)`, `set_prefix(channel, prefix)` and `timeout(user, channel, duration)`.
  - `user(name)` returns an object with `id` and `name`, or raises `UserUnknownError`.
  - The platform is taken from the incoming message's own resources.
- `clients`: an object with these attributes:
  - `kick`, which has `fetch_channel(name)`.
  - `pastebin`, which has `fetch_paste(url)` and returns the lines.
  - `bible`, which has `fetch_verses(query)`.
- `ledger`: a `GambaLedger`.
- `channels`: a `ChannelStore`.
- `cache`: any mutable mapping.
- `rand_reader`: a byte reader.
- `rand_source`: a `random.Random`.

## Usage

```python
from chatcommands.basecommand import ArgType, Command, Param

cmd = Command(
    name="tuck",
    desc="Tuck someone to bed.",
    params=(Param(name="user", type=ArgType.USERNAME, required=True),),
)
print(cmd.usage("$"))   # $tuck <user>
```

```python
from chatcommands.admin import ChannelStore
from chatcommands.basecommand import IncomingMessage, Message, Resources
from chatcommands.gamba import GambaLedger
from chatcommands.handler import Handler

handler = Handler(Resources(ledger=GambaLedger(), channels=ChannelStore()))
msg = IncomingMessage(
    Message(text="$gn", user="user1", channel="user2"),
    resources=Resources(platform=my_platform),
)
for out in handler.handle(msg):
    print(out.message.channel, out.message.text)
```

## What it does not do

- It has no platform or network code. Nothing here connects to a chat service or fetches from Kick, Pastebin or a Bible API. Those objects must be supplied.
- The ledger, the joined-channel store, the cache and the cooldowns all live in memory. They are lost when the process ends.
- There is no command for reloading configuration.
- There are no 7TV or Twitch lookup commands.
- The package does not ship a fortunes file. `fortune` raises `LookupError` unless a `fortunes.txt` sits beside `chatcommands/fun.py`.
- There is no command-line program.

## Tests

```
pip install -e .[test]
pytest
```
#!/usr/bin/env python

# layerdb_shell.py
#
# Line-oriented front end for layerdb.LayeredStore.
# Reads whitespace separated tokens from stdin (or script files) and prints
# answers to stdout, e.g.
#
#   SET a 10
#   GET a          -> 10
#   NUMEQUALTO 10  -> 1
#   BEGIN / ROLLBACK / COMMIT / END


# --------------------------------------------------------------------------- #
# 1. CLI                                                                      #
# --------------------------------------------------------------------------- #
import argparse
def parse_args(argv=None):
    p = argparse.ArgumentParser(description="In-memory key/value store with nested transactions",
                                epilog="Commands: SET GET UNSET NUMEQUALTO BEGIN ROLLBACK COMMIT END")
    p.add_argument("files", nargs="*", metavar="FILE",
                   help="Command script(s) to run in order, sharing one database. Default/'-' is stdin")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Debug logging on stderr")
    return p.parse_args(argv)


# --------------------------------------------------------------------------- #

import logging
import sys

from layerdb import LayerDBError, LayeredStore, NoActiveTransaction

logger = logging.getLogger(__name__)


class ShellError(LayerDBError):
    pass


class UnknownCommand(ShellError):
    def __init__(self, command):
        super().__init__(f"Unexpected command: {command}")
        self.command = command


class MissingArgument(ShellError):
    """Input ran out in the middle of a command. Ends the session."""

    def __init__(self, command):
        super().__init__(f"Missing argument for {command}")
        self.command = command


def tokenize(stream):
    """Lazily yield whitespace separated tokens, so interactive input answers per line."""
    for line in stream:
        yield from line.split()


class Shell:
    """Dispatches protocol commands to one LayeredStore."""

    def __init__(self, store=None, out=None):
        self.store = store if store is not None else LayeredStore()
        # None means "whatever sys.stdout is at print time"
        self.out = out
        self.commands = {
            "SET": self.do_set,
            "GET": self.do_get,
            "UNSET": self.do_unset,
            "NUMEQUALTO": self.do_numequalto,
            "BEGIN": self.do_begin,
            "ROLLBACK": self.do_rollback,
            "COMMIT": self.do_commit,
        }

    def emit(self, text):
        print(text, file=self.out)

    def _arg(self, tokens, command):
        try:
            return next(tokens)
        except StopIteration:
            raise MissingArgument(command) from None

    # ----- handlers -------------------------------------------------------- #

    def do_set(self, tokens):
        name = self._arg(tokens, "SET")
        value = self._arg(tokens, "SET")
        self.store.set(name, value)

    def do_get(self, tokens):
        self.emit(self.store.get(self._arg(tokens, "GET")))

    def do_unset(self, tokens):
        self.store.unset(self._arg(tokens, "UNSET"))

    def do_numequalto(self, tokens):
        self.emit(self.store.num_equal_to(self._arg(tokens, "NUMEQUALTO")))

    def do_begin(self, tokens):
        self.store.begin()

    def do_rollback(self, tokens):
        self.store.rollback()

    def do_commit(self, tokens):
        self.store.commit()

    # ----- loop ------------------------------------------------------------ #

    def execute(self, command, tokens):
        """Run one command, pulling its arguments from *tokens*.
        Returns False if the command was END.
        """
        keyword = command.upper()
        if keyword == "END":
            return False
        handler = self.commands.get(keyword)
        try:
            if handler is None:
                raise UnknownCommand(command)
            handler(tokens)
        except NoActiveTransaction:
            self.emit("NO TRANSACTION")
        except UnknownCommand as e:
            logger.debug("skipping %r", e.command)
            self.emit(str(e))
        return True

    def run(self, tokens):
        """Process commands until END or the tokens run out.
        Returns True if END was seen.
        MissingArgument propagates to the caller.
        """
        tokens = iter(tokens)
        for command in tokens:
            if not self.execute(command, tokens):
                return True
        return False


#####################################################
# Main                                              #
#####################################################

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(name)s: %(message)s", stream=sys.stderr)

    shell = Shell()
    try:
        for name in args.files or ["-"]:
            if name == "-":
                ended = shell.run(tokenize(sys.stdin))
            else:
                logger.debug("running %s", name)
                with open(name) as f:
                    ended = shell.run(tokenize(f))
            if ended:
                break
    except MissingArgument as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading {e.filename}: {e.strerror}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())

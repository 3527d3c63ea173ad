import logging

logger = logging.getLogger(__name__)

NULL = "NULL"


class _Tombstone:
    """Marks a key as deleted in a layer, as opposed to having no record."""

    def __repr__(self):
        return "TOMBSTONE"


TOMBSTONE = _Tombstone()


class LayerDBError(Exception):
    pass


class NoActiveTransaction(LayerDBError):
    """Raised by rollback/commit when only the base layer is left."""

    def __init__(self, msg="No active transaction"):
        super().__init__(msg)


class Layer:
    """One scope of pending writes: the committed base, or one open transaction.

    entries maps key -> value or TOMBSTONE.
    counts maps value -> number of live keys holding it, as of this layer.
    A count of 0 is the counts equivalent of a tombstone.

    The base layer has nothing below it to shadow, so tombstones and zeros
    written to it just remove the record.
    """

    def __init__(self, is_base=False):
        self.is_base = is_base
        self.entries = {}
        self.counts = {}

    def resolve_key(self, key):
        """None if this layer has no record for key, else the value or TOMBSTONE."""
        return self.entries.get(key)

    def resolve_count(self, value):
        return self.counts.get(value)

    def put_entry(self, key, state):
        if self.is_base and state is TOMBSTONE:
            self.entries.pop(key, None)
        else:
            self.entries[key] = state

    def put_count(self, value, count: int):
        if self.is_base and count == 0:
            self.counts.pop(value, None)
        else:
            self.counts[value] = count

    def absorb(self, newer: "Layer"):
        """Overwrite our records with every record of a newer layer."""
        for key, state in newer.entries.items():
            self.put_entry(key, state)
        for value, count in newer.counts.items():
            self.put_count(value, count)


class LayeredStore:
    """Key-value store with nested transactions and a value -> count index."""

    def __init__(self):
        # newest first; the last layer is the committed database
        self.layers = [Layer(is_base=True)]

    @property
    def depth(self) -> int:
        return len(self.layers)

    @property
    def in_transaction(self) -> bool:
        return len(self.layers) > 1

    # ----- reads ----------------------------------------------------------- #

    def lookup(self, key):
        """Return the live value for *key*, or None if unset."""
        for layer in self.layers:
            state = layer.resolve_key(key)
            if state is not None:
                return None if state is TOMBSTONE else state
        return None

    def get(self, key) -> str:
        value = self.lookup(key)
        return NULL if value is None else value

    def count_record(self, value):
        """Return the newest count record for *value*, or None if no layer has one."""
        for layer in self.layers:
            count = layer.resolve_count(value)
            if count is not None:
                return count
        return None

    def num_equal_to(self, value) -> int:
        # Each record already holds the full count as of its layer,
        # so the newest one wins and nothing is summed.
        count = self.count_record(value)
        return 0 if count is None else count

    # ----- writes ---------------------------------------------------------- #

    def _adjust_count(self, value, delta: int):
        self.layers[0].put_count(value, self.num_equal_to(value) + delta)

    def set(self, key, value):
        """Set *key* to *value* in the current scope."""
        # Must read the old value before layer 0 is overwritten
        old = self.lookup(key)
        self.layers[0].put_entry(key, value)
        if old is not None:
            self._adjust_count(old, -1)
        self._adjust_count(value, +1)

    def unset(self, key):
        old = self.lookup(key)
        self.layers[0].put_entry(key, TOMBSTONE)
        if old is not None:
            self._adjust_count(old, -1)

    # ----- transactions ---------------------------------------------------- #

    def _require_transaction(self):
        if len(self.layers) == 1:
            raise NoActiveTransaction()

    def begin(self):
        """Open a new transaction layer on top of the stack."""
        self.layers.insert(0, Layer())
        logger.debug("begin: depth now %d", len(self.layers))

    def rollback(self):
        """Discard only the most recent transaction."""
        self._require_transaction()
        dropped = self.layers.pop(0)
        logger.debug("rollback: dropped %d entries, depth now %d",
                     len(dropped.entries), len(self.layers))

    def commit(self):
        """Fold every open transaction into the base, oldest first."""
        self._require_transaction()
        base = self.layers[-1]
        for layer in reversed(self.layers[:-1]):
            base.absorb(layer)
        self.layers = [base]
        logger.debug("commit: %d keys, %d distinct values",
                     len(base.entries), len(base.counts))

"""
Per-evaluation roll bookkeeping.

A RollContext is the random number stream and the roll history for one logical
evaluation. Exactly one context is current for each call stack. The current
context lives in a context variable, so separate threads and asyncio tasks each
see their own and never each other's.
"""
import random
import logging
import contextvars
from collections import namedtuple
from contextlib import contextmanager

_current = contextvars.ContextVar('dicexpr_roll_context', default=None)


class RollRecord(namedtuple('RollRecord', 'function args dice desc')):
    """
    One entry in a roll history: which function rolled, with what arguments,
    the individual dice it produced, and a readable description.
    """
    __slots__ = ()

    def __str__(self):
        return self.desc


class RollContext(object):
    """
    @ivar rng: Random stream every die in this evaluation is drawn from.
    @type rng: L{random.Random}

    @ivar rolls: What was rolled, in the order it was rolled.
    @type rolls: C{list} of L{RollRecord}

    @ivar parent: The context this one replaced as current, if any.
    @type parent: L{RollContext} or None
    """

    def __init__(self, rng=None, parent=None):
        if rng is None:
            rng = random.Random()
        self.rng = rng
        self.parent = parent
        self.rolls = []

    def __repr__(self):
        return "RollContext(rolls=%d, depth=%d)" % (len(self.rolls),
                                                    self.depth)

    @property
    def depth(self):
        depth = 0
        ctx = self.parent
        while ctx is not None:
            depth += 1
            ctx = ctx.parent
        return depth

    @classmethod
    def current(cls):
        """
        @rtype: L{RollContext} or None
        """
        return _current.get()

    @contextmanager
    def installed(self):
        """
        Make this the current context for the duration of the block. Whatever
        was current before is restored however the block exits.
        """
        token = _current.set(self)
        logging.debug("Installed %r", self)
        try:
            yield self
        finally:
            _current.reset(token)
            logging.debug("Restored %r", _current.get())

    def nested(self):
        """
        A child context sharing this context's random stream, for evaluating
        part of an expression on its own.
        """
        return RollContext(rng=self.rng, parent=self)

    def merge(self):
        """
        Append this context's history to its parent's.
        """
        if self.parent is not None:
            self.parent.rolls.extend(self.rolls)

    def randint(self, sides):
        """
        Roll one die with faces 1 through sides.
        """
        return self.rng.randint(1, sides)

    def choice(self, faces):
        """
        Roll one die with the given faces.
        """
        return self.rng.choice(faces)

    def record(self, function, args, dice, desc):
        record = RollRecord(function, tuple(args), tuple(dice), desc)
        self.rolls.append(record)
        return record

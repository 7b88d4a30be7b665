"""
Named variable storage visible to expressions.
"""
import decimal
from decimal import Decimal

from dicexpr.errors import UnknownNameError


def to_value(value):
    """
    Coerce a Python value into one an expression can hold: a Decimal or a
    string. Booleans become 1 or 0.
    """
    if isinstance(value, (Decimal, str)):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(value)
    except (TypeError, ValueError, decimal.InvalidOperation):
        raise TypeError("Cannot store %r in an expression variable" % value)


class VariableResolver(object):
    """
    Case-sensitive variable store shared by every evaluation of a parser.

    Names that could never be written in an expression (such as those starting
    with '#') are free for dice functions to carry state between evaluations.
    """

    def __init__(self, variables=None):
        self._vars = {}
        if variables:
            for name, value in dict(variables).items():
                self.set(name, value)

    def __contains__(self, name):
        return name in self._vars

    def __getitem__(self, name):
        return self.get(name)

    def __setitem__(self, name, value):
        self.set(name, value)

    def __delitem__(self, name):
        self.remove(name)

    def __len__(self):
        return len(self._vars)

    def __repr__(self):
        return "VariableResolver(%r)" % self._vars

    def contains(self, name):
        return name in self._vars

    def get(self, name):
        """
        @raise UnknownNameError: If the variable is not set.
        """
        try:
            return self._vars[name]
        except KeyError:
            raise UnknownNameError(name, 'variable')

    def set(self, name, value):
        self._vars[name] = to_value(value)
        return self._vars[name]

    def remove(self, name):
        self._vars.pop(name, None)

"""
The function catalog: every name an expression can call.

Each catalog entry is a L{DiceFunction} instance describing its own arity,
argument kinds, return kind and whether it draws on the random stream. The
expression engine looks functions up by exact, case-sensitive name and hands
them already-evaluated arguments; lazy functions such as if() instead receive
the argument nodes and decide for themselves what to evaluate.
"""
import decimal
import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_DOWN
from decimal import ROUND_HALF_UP

from dicexpr.errors import ConfigInvalid, EvaluationError
from dicexpr.engine import FunctionNode, format_value, truth

NUMBER = 'number'
INTEGER = 'integer'
STRING = 'string'
ANY = 'any'


def _kind_ok(kind, value):
    if kind == ANY:
        return True
    if kind == STRING:
        return isinstance(value, str)
    if not isinstance(value, Decimal):
        return False
    if kind == INTEGER:
        return value == value.to_integral_value()
    return True


class DiceFunction(object):
    """
    Generic catalog entry.

    @cvar name: Name the function is called by in expressions.
    @cvar min_args: Fewest arguments accepted.
    @cvar max_args: Most arguments accepted, or None for no limit.
    @cvar arg_kinds: Kind of each positional argument; the last kind repeats
        for any further arguments.
    @cvar returns: Kind of value produced.
    @cvar random: Whether calling the function draws on the roll context.
    @cvar lazy: Whether the function receives unevaluated argument nodes.
    """
    name = None
    min_args = 0
    max_args = None
    arg_kinds = ()
    returns = NUMBER
    random = True
    lazy = False

    def __repr__(self):
        return "<%s '%s'>" % (self.__class__.__name__, self.name)

    def check_arity(self, count):
        if count < self.min_args or (self.max_args is not None
                                     and count > self.max_args):
            if self.min_args == self.max_args:
                expected = "%d" % self.min_args
            elif self.max_args is None:
                expected = "at least %d" % self.min_args
            else:
                expected = "%d to %d" % (self.min_args, self.max_args)
            raise EvaluationError("Function '%s' takes %s arguments (%d given)"
                                  % (self.name, expected, count))

    def check_args(self, args):
        self.check_arity(len(args))
        for i, value in enumerate(args):
            if not self.arg_kinds:
                break
            kind = self.arg_kinds[min(i, len(self.arg_kinds) - 1)]
            if not _kind_ok(kind, value):
                raise EvaluationError(
                    "Argument %d of '%s' must be %s %s, got %s"
                    % (i + 1, self.name, 'an' if kind == INTEGER else 'a',
                       kind, format_value(value)))

    def invoke(self, env, args):
        """
        Validate evaluated arguments and call L{evaluate} against the active
        roll context.
        """
        self.check_args(args)
        try:
            result = self.apply(env, args)
        except decimal.DecimalException as e:
            raise EvaluationError("Arithmetic error in %s(): %s"
                                  % (self.name, e.__class__.__name__))
        logging.debug("%s(%s) => %r", self.name,
                      ', '.join(map(format_value, args)), result)
        return result

    def apply(self, env, args):
        return self.evaluate(env.context, *args)

    def evaluate(self, context, *args):
        raise NotImplementedError("'%s' has not implemented evaluate()"
                                  % self.__class__.__name__)


class MathFunction(DiceFunction):
    """
    Deterministic numeric function wrapping a plain Python callable.
    """
    random = False
    arg_kinds = (NUMBER,)
    func = None

    def evaluate(self, context, *args):
        return self.func(*args)


class Abs(MathFunction):
    name = 'abs'
    min_args = max_args = 1
    func = staticmethod(abs)


class Ceil(MathFunction):
    name = 'ceil'
    min_args = max_args = 1
    func = staticmethod(lambda v: v.to_integral_value(rounding=ROUND_CEILING))


class Floor(MathFunction):
    name = 'floor'
    min_args = max_args = 1
    func = staticmethod(lambda v: v.to_integral_value(rounding=ROUND_FLOOR))


class Trunc(MathFunction):
    name = 'trunc'
    min_args = max_args = 1
    func = staticmethod(lambda v: v.to_integral_value(rounding=ROUND_DOWN))


class Round(MathFunction):
    """
    round(n[, places]), half away from zero.
    """
    name = 'round'
    min_args = 1
    max_args = 2
    arg_kinds = (NUMBER, INTEGER)

    def evaluate(self, context, value, places=Decimal(0)):
        return value.quantize(Decimal(1).scaleb(-int(places)),
                              rounding=ROUND_HALF_UP)


class Min(MathFunction):
    name = 'min'
    min_args = 1
    func = staticmethod(min)


class Max(MathFunction):
    name = 'max'
    min_args = 1
    func = staticmethod(max)


class Sqrt(MathFunction):
    name = 'sqrt'
    min_args = max_args = 1

    def evaluate(self, context, value):
        if value < 0:
            raise EvaluationError("Square root of negative number %s"
                                  % format_value(value))
        return value.sqrt()


class Pow(MathFunction):
    name = 'pow'
    min_args = max_args = 2

    def evaluate(self, context, base, exponent):
        if base == 0 and exponent < 0:
            raise EvaluationError("Division by zero")
        return base ** exponent


class If(DiceFunction):
    """
    if(condition, then[, else])

    Only the branch taken is evaluated, as a nested evaluation with its own
    roll context. Dice in the other branch are never rolled. A false condition
    with no else branch yields 0.
    """
    name = 'if'
    min_args = 2
    max_args = 3
    returns = ANY
    random = False
    lazy = True

    def choose(self, env, nodes):
        self.check_arity(len(nodes))
        condition = nodes[0].eval(env)
        return 1 if truth(condition) else 2

    def call(self, env, nodes):
        taken = self.choose(env, nodes)
        if taken >= len(nodes):
            return Decimal(0)
        with env.nested() as branch:
            return nodes[taken].eval(branch)

    def derive(self, env, node):
        args = list(node.args)
        self.check_arity(len(args))
        args[0] = args[0].deterministic(env)
        taken = self.choose(env, args)
        if taken < len(args):
            with env.nested() as branch:
                args[taken] = args[taken].deterministic(branch)
        return FunctionNode(node.name, args)


class Eval(DiceFunction):
    """
    eval(text): evaluate shorthand text as a complete nested expression and
    yield its value.
    """
    name = 'eval'
    min_args = max_args = 1
    arg_kinds = (STRING,)
    returns = ANY

    def invoke(self, env, args):
        self.check_args(args)
        if env.parser is None:
            raise EvaluationError("eval() needs an expression parser")
        return env.parser.evaluate(args[0]).value


BUILTIN_FUNCTIONS = (Abs, Ceil, Floor, Trunc, Round, Min, Max, Sqrt, Pow, If,
                     Eval)


class FunctionCatalog(object):
    """
    Append-only registry of name to L{DiceFunction}. Built once per parser and
    only read after that.
    """

    def __init__(self, functions=()):
        self._functions = {}
        for func in functions:
            self.register(func)

    def __contains__(self, name):
        return name in self._functions

    def __len__(self):
        return len(self._functions)

    def __iter__(self):
        return iter(self._functions.values())

    def register(self, func):
        """
        @param func: A L{DiceFunction} subclass or instance.

        @raise ConfigInvalid: If the name is missing or already registered.
        """
        if isinstance(func, type):
            func = func()
        if not isinstance(func, DiceFunction) or not func.name:
            raise ConfigInvalid("Invalid catalog function: %r" % func)
        if func.name in self._functions:
            raise ConfigInvalid("Duplicate function name: %s" % func.name)
        self._functions[func.name] = func
        return func

    def get(self, name):
        return self._functions.get(name)

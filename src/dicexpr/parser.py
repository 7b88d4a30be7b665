"""
The evaluation coordinator: shorthand in, L{Result} out.

    >>> from dicexpr import ExpressionParser
    >>> parser = ExpressionParser()
    >>> result = parser.evaluate('100+4d1*10')
    >>> result.canonical
    '100+roll(4, 1)*10'
    >>> result.detail
    '100 + 4 * 10'
    >>> result.value
    Decimal('140')
"""
import random
import logging
import threading

from dicexpr import engine
from dicexpr.config import config
from dicexpr.context import RollContext
from dicexpr.engine import Evaluation, format_value
from dicexpr.functions import BUILTIN_FUNCTIONS, FunctionCatalog
from dicexpr.patterns import PatternTable


class Result(object):
    """
    The outcome of evaluating one expression.

    @ivar expression: The text as it was given.
    @ivar canonical: The text after shorthand was rewritten.
    @ivar detail: The expression with every roll replaced by what it rolled.
    @ivar value: The final value.
    @type value: C{decimal.Decimal} or C{str}
    @ivar rolls: Everything rolled, in the order it was rolled.
    @type rolls: C{list} of L{dicexpr.context.RollRecord}
    """
    __slots__ = ('expression', 'canonical', 'detail', 'value', 'rolls')

    def __init__(self, expression, canonical, detail, value, rolls=()):
        self.expression = expression
        self.canonical = canonical
        self.detail = detail
        self.value = value
        self.rolls = list(rolls)

    def __repr__(self):
        return "<Result %r => %s>" % (self.expression, self)

    def __str__(self):
        if self.detail == format_value(self.value):
            return self.detail
        return "%s = %s" % (self.detail, format_value(self.value))

    def __eq__(self, other):
        if not isinstance(other, Result):
            return NotImplemented
        return (self.value == other.value and self.detail == other.detail
                and self.canonical == other.canonical
                and [r.desc for r in self.rolls]
                == [r.desc for r in other.rolls])

    __hash__ = None


class ExpressionParser(object):
    """
    Rewrites, parses and evaluates dice expressions.

    One parser may be shared by any number of threads and tasks. Each call to
    L{evaluate} has its own roll context; only parsing and evaluation proper
    are serialized.

    @ivar patterns: The shorthand rewrite table.
    @type patterns: L{dicexpr.patterns.PatternTable}
    @ivar variables: Variables shared by every evaluation.
    @type variables: L{dicexpr.variables.VariableResolver}
    @ivar functions: Everything an expression may call.
    @type functions: L{dicexpr.functions.FunctionCatalog}
    """

    def __init__(self, patterns=None, resolver=None, functions=None):
        """
        @param patterns: A L{PatternTable} or sequence of rules. Defaults to
            the configured table.
        @param resolver: Variable store. Defaults to a new instance of the
            configured resolver class.
        @param functions: Extra L{dicexpr.functions.DiceFunction} classes or
            instances to register in place of the configured dice functions.
            The builtins are always registered.
        """
        section = config['parser']
        if not isinstance(patterns, PatternTable):
            if patterns is None:
                patterns = section.getobject('patterns')
            patterns = PatternTable(patterns,
                                    check=section.getboolean('check patterns'))
        self.patterns = patterns
        if resolver is None:
            resolver = section.getclass('resolver')()
        self.variables = resolver
        if functions is None:
            functions = section.getobject('functions')
        self.functions = FunctionCatalog(BUILTIN_FUNCTIONS)
        for func in functions:
            self.functions.register(func)
        self._lock = threading.RLock()
        self._seeder = random.Random()
        logging.info("Expression parser ready: %d rules, %d functions",
                     len(self.patterns), len(self.functions))

    def set_seed(self, seed):
        """
        Reseed the source every top-level evaluation draws its random stream
        from, so that a following series of evaluations repeats exactly.
        """
        with self._lock:
            self._seeder.seed(seed)
        logging.debug("Parser seeded with %r", seed)

    def _new_context(self, parent, seed):
        if seed is not None:
            return RollContext(rng=random.Random(seed), parent=parent)
        if parent is not None:
            return parent.nested()
        with self._lock:
            stream_seed = self._seeder.getrandbits(64)
        return RollContext(rng=random.Random(stream_seed))

    def transform(self, text):
        """
        Rewrite shorthand into canonical syntax.
        """
        return self.patterns.transform(text)

    def parse(self, text):
        """
        Rewrite and parse text into an expression tree.

        @raise dicexpr.errors.ParseError: If the canonical text is malformed.
        """
        return engine.parse(self.transform(text))

    def evaluate(self, expression, seed=None):
        """
        Evaluate an expression.

        Called while another evaluation is running (from eval() or a dice
        function), this is a nested evaluation: it shares the enclosing random
        stream and, if it succeeds, adds its rolls to the enclosing history.

        @param expression: Shorthand or canonical expression text.
        @type expression: C{str}
        @param seed: Seed a private random stream for just this evaluation.

        @rtype: L{Result}

        @raise dicexpr.errors.ParseError: On malformed text.
        @raise dicexpr.errors.EvaluationError: If evaluation fails. Nothing
            from a failed evaluation is added to any enclosing history.
        """
        parent = RollContext.current()
        context = self._new_context(parent, seed)
        canonical = self.transform(expression)
        with self._lock, context.installed():
            tree = engine.parse(canonical)
            env = Evaluation(self.functions, self.variables, context, self)
            fixed = tree.deterministic(env)
            detail = str(fixed)
            value = fixed.eval(env)
        context.merge()
        result = Result(expression, canonical, detail, value, context.rolls)
        logging.debug("Evaluated %r: %s", expression, result)
        return result


_default = None
_default_lock = threading.Lock()


def default_parser():
    """
    The shared parser built from configuration on first use.
    """
    global _default
    with _default_lock:
        if _default is None:
            _default = ExpressionParser()
        return _default


def evaluate(text, **kw):
    """
    Evaluate text with the default parser.
    """
    return default_parser().evaluate(text, **kw)

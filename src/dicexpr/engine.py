"""
Generic arithmetic and function-call expression engine based on pyparsing.

This is the engine canonical text is handed to once shorthand has been
rewritten. It knows nothing about dice: every call is dispatched by name to
the function catalog of the evaluation it runs in.

Extended BNF (notation as in the Python reference manual):
         digit ::= "0"..."9"
    identifier ::= (letter | "_") (letter | digit | "_")*
        number ::= digit+ ["." digit*] | "." digit+
           hex ::= "0" ("x" | "X") hexdigit+
        string ::= "'" char* "'" | '"' char* '"'
       arglist ::= expression ("," expression)*
      function ::= identifier "(" [arglist] ")"
          atom ::= hex | number | string | function | identifier
         group ::= "(" expression ")"
      exponent ::= expression "^" expression
         unary ::= ("+" | "-" | "!") expression
      multiply ::= expression ("*" | "/") expression
           add ::= expression ("+" | "-") expression
       compare ::= expression ("<" | ">" | "<=" | ">=" | "==" | "!=") expression
           and ::= expression "&&" expression
            or ::= expression "||" expression
        assign ::= identifier "=" expression
    expression ::= group | atom | exponent | unary | multiply | add
                   | compare | and | or | assign

Operators are listed from tightest to loosest binding. Numbers are Decimals;
comparison and boolean operators yield 1 or 0. Adding anything to a string
concatenates.

Every node can produce a deterministic variant of itself: a copy of the tree in
which each call to a function that rolls dice has been made exactly once and
replaced by the value it returned. Formatting that copy gives the detail text
and evaluating it gives the final value, so both always describe the same
rolls.
"""
import decimal
import operator
import logging
from decimal import Decimal
from contextlib import contextmanager

import pyparsing
from pyparsing import ParseBaseException, ParseFatalException

from dicexpr.errors import ParseError, EvaluationError, UnknownNameError

pyparsing.ParserElement.enable_packrat()

ASSIGN, OR, AND, COMPARE, ADD, MULTIPLY, UNARY, EXPONENT, ATOM = range(1, 10)


def _grammar():
    from pyparsing import Forward, Group, Literal, QuotedString, Regex
    from pyparsing import Suppress, Word, DelimitedList, Opt, OpAssoc
    from pyparsing import alphas, alphanums, infix_notation, one_of

    expression = Forward()

    LPAR, RPAR = map(Suppress, "()")

    identifier = Word(alphas + "_", alphanums + "_")

    hexnum = Regex(r"0[xX][0-9a-fA-F]+")
    hexnum.set_parse_action(lambda t: NumberNode(Decimal(int(t[0], 16)),
                                                 t[0]))
    number = Regex(r"\d+(?:\.\d*)?|\.\d+")
    number.set_parse_action(lambda t: NumberNode(Decimal(t[0]), t[0]))
    string = (QuotedString("'", esc_char='\\')
              | QuotedString('"', esc_char='\\'))
    string.set_parse_action(lambda t: StringNode(t[0]))

    arglist = Group(Opt(DelimitedList(expression)))
    function = identifier + LPAR + arglist + RPAR
    function.set_parse_action(lambda t: FunctionNode(t[0], list(t[1])))

    variable = identifier.copy()
    variable.set_parse_action(lambda t: VariableNode(t[0]))

    atom = hexnum | number | string | function | variable

    expression <<= infix_notation(
        atom,
        [
            (Literal('^'), 2, OpAssoc.LEFT, BinaryOpNode.from_tokens),
            (one_of('+ - !'), 1, OpAssoc.RIGHT, UnaryOpNode.from_tokens),
            (one_of('* /'), 2, OpAssoc.LEFT, BinaryOpNode.from_tokens),
            (one_of('+ -'), 2, OpAssoc.LEFT, BinaryOpNode.from_tokens),
            (one_of('< > <= >= == !='), 2, OpAssoc.LEFT,
             BinaryOpNode.from_tokens),
            (Literal('&&'), 2, OpAssoc.LEFT, BinaryOpNode.from_tokens),
            (Literal('||'), 2, OpAssoc.LEFT, BinaryOpNode.from_tokens),
            (Regex(r'=(?!=)'), 2, OpAssoc.RIGHT, AssignNode.from_tokens),
        ]
    )

    return expression


def format_number(value):
    """
    Plain decimal text for a number: no exponent, no trailing zeros.
    """
    text = format(value, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def format_value(value):
    if isinstance(value, Decimal):
        return format_number(value)
    return str(value)


def truth(value):
    if isinstance(value, Decimal):
        return value != 0
    return bool(value)


def as_number(value, what='value'):
    """
    Insist on a numeric operand.

    @raise EvaluationError: If value is a string.
    """
    if not isinstance(value, Decimal):
        raise EvaluationError("Expected a number for %s, got %r"
                              % (what, value))
    return value


class Evaluation(object):
    """
    Everything a tree needs while it is being evaluated: where functions and
    variables come from, and the roll context dice are drawn against.

    @ivar functions: L{dicexpr.functions.FunctionCatalog}
    @ivar variables: L{dicexpr.variables.VariableResolver}
    @ivar context: L{dicexpr.context.RollContext}
    @ivar parser: The L{dicexpr.parser.ExpressionParser} running this
        evaluation, if any.
    """

    def __init__(self, functions, variables, context, parser=None):
        self.functions = functions
        self.variables = variables
        self.context = context
        self.parser = parser

    def lookup(self, name):
        func = self.functions.get(name)
        if func is None:
            raise UnknownNameError(name, 'function')
        return func

    @contextmanager
    def nested(self):
        """
        Evaluate part of a tree in its own child roll context. The child is
        current only inside the block; its rolls join this evaluation's
        history only if the block succeeds.
        """
        child = self.context.nested()
        with child.installed():
            yield Evaluation(self.functions, self.variables, child,
                             self.parser)
        child.merge()


class EvalNode(object):
    """
    Generic EvalNode. EvalNodes form the tree that is generated as a result of
    parsing a canonical expression.
    """
    __slots__ = ()
    precedence = ATOM

    def eval(self, env):
        raise NotImplementedError()

    def deterministic(self, env):
        return self

    def wrap(self, child, parens):
        text = str(child)
        return '(%s)' % text if parens else text


class LiteralNode(EvalNode):
    __slots__ = ('value',)

    def eval(self, env):
        return self.value

    def __repr__(self):
        return "%s(%r)" % (self.__class__.__name__.replace('Node', ''),
                           self.value)


class NumberNode(LiteralNode):
    __slots__ = ('text',)

    def __init__(self, value, text=None):
        self.value = value
        self.text = text

    def __str__(self):
        text = self.text or format_number(self.value)
        if self.value < 0:
            return '(%s)' % text
        return text


class StringNode(LiteralNode):
    __slots__ = ()

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return "'%s'" % self.value.replace('\\', '\\\\').replace("'", "\\'")


class VariableNode(EvalNode):
    __slots__ = ('name',)

    def __init__(self, name):
        self.name = name

    def eval(self, env):
        return env.variables.get(self.name)

    def __repr__(self):
        return "Variable(%s)" % self.name

    def __str__(self):
        return self.name


class FunctionNode(EvalNode):
    __slots__ = ('name', 'args')

    def __init__(self, name, args):
        self.name = name
        self.args = args

    def __repr__(self):
        return "Func:%s(%s)" % (self.name, ', '.join(map(repr, self.args)))

    def __str__(self):
        return "%s(%s)" % (self.name, ', '.join(map(str, self.args)))

    def eval(self, env):
        func = env.lookup(self.name)
        if func.lazy:
            return func.call(env, self.args)
        return func.invoke(env, [a.eval(env) for a in self.args])

    def deterministic(self, env):
        func = env.lookup(self.name)
        if func.lazy:
            return func.derive(env, self)
        node = FunctionNode(self.name,
                            [a.deterministic(env) for a in self.args])
        if func.random:
            return RecordedNode(node, node.eval(env))
        return node


class RecordedNode(EvalNode):
    """
    A call that has already been made, standing in for it in a deterministic
    tree. Numbers format as themselves. Report strings format as the call that
    produced them, since the report is the displayed value.
    """
    __slots__ = ('call', 'value')

    def __init__(self, call, value):
        self.call = call
        self.value = value

    def eval(self, env):
        return self.value

    def __repr__(self):
        return "Recorded(%r => %r)" % (self.call, self.value)

    def __str__(self):
        if isinstance(self.value, Decimal):
            return str(NumberNode(self.value))
        return str(self.call)


def _concat_or_add(lhs, rhs):
    if isinstance(lhs, str) or isinstance(rhs, str):
        return format_value(lhs) + format_value(rhs)
    return lhs + rhs


def _numeric(func):
    def _op(lhs, rhs):
        return func(as_number(lhs, 'left operand'),
                    as_number(rhs, 'right operand'))
    return _op


def _compare(func, ordered=True):
    def _op(lhs, rhs):
        if isinstance(lhs, Decimal) != isinstance(rhs, Decimal):
            if ordered:
                raise EvaluationError("Cannot compare %r with %r"
                                      % (lhs, rhs))
            return Decimal(int(func(0, 1)))
        return Decimal(int(func(lhs, rhs)))
    return _op


class OpNode(EvalNode):
    __slots__ = ('op', 'opfunc')
    ops = {}

    def __init__(self, op):
        self.op = op
        self.opfunc, self.precedence = self.ops[op]

    def apply(self, *operands):
        try:
            return self.opfunc(*operands)
        except ZeroDivisionError:
            raise EvaluationError("Division by zero")
        except decimal.DecimalException as e:
            raise EvaluationError("Arithmetic error in '%s': %s"
                                  % (self.op, e.__class__.__name__))


class BinaryOpNode(OpNode):
    __slots__ = ('lhs', 'rhs', 'precedence')
    ops = {
        '^': (_numeric(operator.pow), EXPONENT),
        '*': (_numeric(operator.mul), MULTIPLY),
        '/': (_numeric(operator.truediv), MULTIPLY),
        '+': (_concat_or_add, ADD),
        '-': (_numeric(operator.sub), ADD),
        '<': (_compare(operator.lt), COMPARE),
        '>': (_compare(operator.gt), COMPARE),
        '<=': (_compare(operator.le), COMPARE),
        '>=': (_compare(operator.ge), COMPARE),
        '==': (_compare(operator.eq, ordered=False), COMPARE),
        '!=': (_compare(operator.ne, ordered=False), COMPARE),
        '&&': (lambda l, r: Decimal(int(truth(l) and truth(r))), AND),
        '||': (lambda l, r: Decimal(int(truth(l) or truth(r))), OR),
    }

    def __init__(self, op, lhs, rhs):
        super(BinaryOpNode, self).__init__(op)
        self.lhs = lhs
        self.rhs = rhs

    @classmethod
    def from_tokens(cls, tok):
        # Sequential binary operations in the same family are sent all at once,
        # so we iterate over them and push the left side deeper as we go.
        tok = tok[0]
        node = cls(tok[1], tok[0], tok[2])
        for op, rhs in zip(tok[3::2], tok[4::2]):
            node = cls(op, node, rhs)
        return node

    def __repr__(self):
        return "BinaryOp(%r %s %r)" % (self.lhs, self.op, self.rhs)

    def __str__(self):
        lhs = self.wrap(self.lhs, self.lhs.precedence < self.precedence)
        rhs = self.wrap(self.rhs, self.rhs.precedence <= self.precedence)
        return "%s %s %s" % (lhs, self.op, rhs)

    def eval(self, env):
        return self.apply(self.lhs.eval(env), self.rhs.eval(env))

    def deterministic(self, env):
        return BinaryOpNode(self.op, self.lhs.deterministic(env),
                            self.rhs.deterministic(env))


class UnaryOpNode(OpNode):
    __slots__ = ('rhs', 'precedence')
    ops = {
        '-': (lambda x: -as_number(x), UNARY),
        '+': (lambda x: +as_number(x), UNARY),
        '!': (lambda x: Decimal(int(not truth(x))), UNARY),
    }

    def __init__(self, op, rhs):
        super(UnaryOpNode, self).__init__(op)
        self.rhs = rhs

    @classmethod
    def from_tokens(cls, tok):
        op, rhs = tok[0]
        return cls(op, rhs)

    def __repr__(self):
        return "UnaryOp(%s%r)" % (self.op, self.rhs)

    def __str__(self):
        return "%s%s" % (self.op, self.wrap(self.rhs, self.rhs.precedence <
                                            self.precedence))

    def eval(self, env):
        return self.apply(self.rhs.eval(env))

    def deterministic(self, env):
        return UnaryOpNode(self.op, self.rhs.deterministic(env))


class AssignNode(EvalNode):
    """
    Stores a value in a named variable and yields that value.
    """
    __slots__ = ('name', 'rhs')
    precedence = ASSIGN

    def __init__(self, name, rhs):
        self.name = name
        self.rhs = rhs

    @classmethod
    def from_tokens(cls, s, loc, tok):
        operands = list(tok[0])[::2]
        node = operands.pop()
        while operands:
            target = operands.pop()
            if not isinstance(target, VariableNode):
                raise ParseFatalException(s, loc,
                                          "Can only assign to a variable")
            node = cls(target.name, node)
        return node

    def __repr__(self):
        return "Assign(%s = %r)" % (self.name, self.rhs)

    def __str__(self):
        return "%s = %s" % (self.name, self.rhs)

    def eval(self, env):
        return env.variables.set(self.name, self.rhs.eval(env))

    def deterministic(self, env):
        # Assign now too, so calls later in the tree see the rolled value.
        node = AssignNode(self.name, self.rhs.deterministic(env))
        node.eval(env)
        return node


grammar = _grammar()


def parse(text, parser=None):
    """
    Parse canonical expression text into a tree.

    @param text: Canonical text, with shorthand already rewritten.
    @param parser: Alternative pyparsing grammar; defaults to L{grammar}.

    @rtype: L{EvalNode}

    @raise ParseError: If the text is not a well-formed expression.
    """
    parser = parser or grammar
    try:
        tree = parser.parse_string(text, parse_all=True)[0]
    except ParseBaseException as e:
        raise ParseError(e.msg, expression=text, line=e.lineno, col=e.col)
    logging.debug("Parsed %r as %r", text, tree)
    return tree

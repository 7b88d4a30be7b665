"""
Dice expression evaluation: tabletop shorthand such as 4d6h or 10d4es6 is
rewritten into function calls, then parsed and evaluated with every roll
recorded.
"""
from dicexpr.errors import Error, ParseError, EvaluationError
from dicexpr.errors import UnknownNameError, RuleAuthoringError, ConfigInvalid
from dicexpr.parser import ExpressionParser, Result, evaluate

__version__ = '1.0.0'

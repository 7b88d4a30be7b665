class ConfigInvalid(Exception):
    pass


class Error(Exception):
    def __init__(self, msg=""):
        super(Error, self).__init__(msg)
        self.message = msg

    def __str__(self):
        return str(self.message)


class ParseError(Error):
    """
    The canonical form of an expression could not be parsed. Probably user
    input!
    """
    expression = None
    line = None
    col = None

    def __init__(self, msg="Syntax error", expression=None, line=None,
                 col=None):
        self.expression = expression
        self.line = line
        self.col = col
        if line is not None and col is not None:
            msg = "%s (line %d, col %d)" % (msg, line, col)
        super(ParseError, self).__init__(msg)


class EvaluationError(Error):
    """
    A parsed expression failed while being evaluated: bad argument counts or
    kinds, impossible dice, arithmetic errors, and so on.
    """
    pass


class UnknownNameError(EvaluationError):
    name = None

    def __init__(self, name, kind='variable', msg=None):
        self.name = name
        self.kind = kind
        if msg is None:
            msg = "Unknown %s '%s'" % (kind, name)
        super(UnknownNameError, self).__init__(msg)


class RuleAuthoringError(Error):
    """
    A rewrite rule's output can be captured again by itself or by a later rule
    in the same table, or an earlier rule swallows the input of a later one.
    """
    rule = None
    other = None

    def __init__(self, msg, rule=None, other=None):
        self.rule = rule
        self.other = other
        super(RuleAuthoringError, self).__init__(msg)

from behave import *

from dicexpr import errors
from dicexpr.config import config
from dicexpr.parser import ExpressionParser
from dicexpr.variables import VariableResolver


@given('the "{option}" option in the "{section}" section is "{value}"')
def set_option(context, option, section, value):
    config.set(section, option, value)


@when('I build a parser')
def build_parser(context):
    context.error = None
    try:
        context.parser = ExpressionParser()
    except (errors.Error, errors.ConfigInvalid) as e:
        context.error = e


@then('building the parser fails with {error}')
def build_fails(context, error):
    cls = getattr(errors, error)
    assert isinstance(context.error, cls), \
        "Expected %s, got %r" % (error, context.error)


@then('the "{option}" option in the "{section}" section reads {value:d}')
def option_reads_int(context, option, section, value):
    assert config[section].getint(option) == value


@then('the "{option}" option in the "{section}" section is true')
def option_is_true(context, option, section):
    assert config[section].getboolean(option) is True


def rules_from_text(text):
    """
    One rule per line: pattern => template [=> example].
    """
    return [tuple(part.strip() for part in line.split(' => '))
            for line in text.splitlines() if line.strip()]


@given('a parser with the rules:')
def parser_with_rules(context):
    context.parser = ExpressionParser(patterns=rules_from_text(context.text))


@when('I build a parser with the rules:')
def build_parser_with_rules(context):
    context.error = None
    try:
        context.parser = ExpressionParser(
            patterns=rules_from_text(context.text))
    except errors.Error as e:
        context.error = e


@given('a parser using a resolver where "{name}" is {value:d}')
def parser_with_resolver(context, name, value):
    context.resolver = VariableResolver({name: value})
    context.parser = ExpressionParser(resolver=context.resolver)


@then('the supplied resolver holds "{name}" as {value:d}')
def resolver_holds(context, name, value):
    assert context.parser.variables is context.resolver
    assert context.resolver.get(name) == value, context.resolver

from behave import *

from dicexpr.patterns import DICE_PATTERNS, PatternTable
from dicexpr.errors import RuleAuthoringError

#: Tables that must fail their self-check, by name.
BROKEN_TABLES = {
    # The unanchored roll rule eats the front of 4d6h before hero sees it.
    'shadowed': (
        (r"\b(\d+)[dD](\d+)", r"roll(\g<1>, \g<2>)", "4d6"),
        (r"\b(\d+)[dD](\d+)[hH]\b", r"hero(\g<1>, \g<2>)", "4d6h"),
    ),
    # Output contains the very text the rule matches.
    'rematched': (
        (r"\b[dD](\d+)\b", r"d\g<1> + roll(1, \g<1>)", "d6"),
    ),
    # A later rule captures what an earlier one produced.
    'recaptured': (
        (r"\b(\d+)[xX](\d+)\b", r"\g<1>d\g<2>", "2x6"),
        (r"\b(\d+)[dD](\d+)\b", r"roll(\g<1>, \g<2>)", "4d6"),
    ),
}


@when('I rewrite "{text}"')
@when("I rewrite '{text}'")
def rewrite(context, text):
    context.canonical = context.parser.transform(text)


@then('the canonical text is "{text}"')
@then("the canonical text is '{text}'")
def canonical_is(context, text):
    assert context.canonical == text, \
        "%r != %r" % (context.canonical, text)


@then('the canonical text is unchanged')
def canonical_unchanged(context):
    assert context.canonical == context.text_in, context.canonical


@when('I rewrite "{text}" expecting no change')
@when("I rewrite '{text}' expecting no change")
def rewrite_unchanged(context, text):
    context.text_in = text
    rewrite(context, text)


@then('every default rule rewrites its own example')
def every_rule_example(context):
    table = PatternTable(DICE_PATTERNS)
    for rule in table:
        assert rule.example is not None, rule
        expected = rule.apply(rule.example)
        actual = table.transform(rule.example)
        assert actual == expected, \
            "%s: %r became %r, not %r" % (rule, rule.example, actual,
                                          expected)


@when('I build the default pattern table')
def build_default_table(context):
    try:
        context.table_built = PatternTable()
    except RuleAuthoringError as e:
        context.error = e


@when('I build the "{name}" pattern table')
def build_broken_table(context, name):
    context.table_built = None
    try:
        context.table_built = PatternTable(BROKEN_TABLES[name])
    except RuleAuthoringError as e:
        context.error = e


@when('I build the "{name}" pattern table without checking it')
def build_unchecked_table(context, name):
    context.table_built = PatternTable(BROKEN_TABLES[name], check=False)


@then('the pattern table is built')
def table_built(context):
    assert context.error is None, context.error
    assert len(context.table_built) > 0


@then('the table check blames the rule for "{example}"')
def table_check_blames(context, example):
    assert isinstance(context.error, RuleAuthoringError), context.error
    assert context.error.rule is not None
    assert context.error.rule.example == example, context.error.rule


@then('the table check also names the rule for "{example}"')
def table_check_names_other(context, example):
    assert context.error.other is not None
    assert context.error.other.example == example, context.error.other


@then('the unchecked table rewrites "{text}" as "{expected}"')
def unchecked_rewrite(context, text, expected):
    actual = context.table_built.transform(text)
    assert actual == expected, "%r != %r" % (actual, expected)


@when('I rewrite the text:')
def rewrite_docstring(context):
    rewrite(context, context.text)


@then('line {n:d} of the canonical text is "{text}"')
def canonical_line_is(context, n, text):
    lines = context.canonical.split('\n')
    assert len(lines) >= n, lines
    assert lines[n - 1] == text, "%r != %r" % (lines[n - 1], text)


@when('I rewrite "{text}" with "{mark}" standing for NUL')
def rewrite_with_nul(context, text, mark):
    rewrite(context, text.replace(mark, '\x00'))


@then('the canonical text is "{text}" with "{mark}" standing for NUL')
def canonical_with_nul(context, text, mark):
    canonical_is(context, text.replace(mark, '\x00'))

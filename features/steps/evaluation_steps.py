import re
import threading
from decimal import Decimal

from behave import *

import dicexpr
from dicexpr import errors
from dicexpr.context import RollContext
from dicexpr.engine import format_value
from dicexpr.parser import ExpressionParser


def evaluate(context, text, **kwargs):
    context.error = None
    context.result = None
    try:
        context.result = context.parser.evaluate(text, **kwargs)
    except errors.Error as e:
        context.error = e
    else:
        context.results = getattr(context, 'results', []) + [context.result]
    return context.result


def result(context):
    assert context.error is None, "Evaluation failed: %s" % context.error
    return context.result


@given('the parser is seeded with {seed:d}')
def seed_parser(context, seed):
    context.parser.set_seed(seed)


@given('the variable "{name}" is {value}')
def set_variable(context, name, value):
    context.parser.variables.set(name, Decimal(value))


@given("the variable \"{name}\" holds '{value}'")
def set_string_variable(context, name, value):
    context.parser.variables.set(name, value)


@when('I evaluate "{text}"')
@when("I evaluate '{text}'")
def evaluate_text(context, text):
    evaluate(context, text)


@when('I evaluate "{text}" with seed {seed:d}')
@when("I evaluate '{text}' with seed {seed:d}")
def evaluate_seeded(context, text, seed):
    evaluate(context, text, seed=seed)


@then('the value is {value}')
def value_is(context, value):
    actual = format_value(result(context).value)
    assert actual == value, "%r != %r" % (actual, value)


@then('the value lies between {low:d} and {high:d}')
def value_between(context, low, high):
    value = result(context).value
    assert isinstance(value, Decimal), value
    assert low <= value <= high, value


@then('the value matches "{pattern}"')
def value_matches(context, pattern):
    value = result(context).value
    assert isinstance(value, str), value
    assert re.match(pattern, value), "%r does not match %r" % (value,
                                                                pattern)


@then('the detail is "{text}"')
@then("the detail is '{text}'")
def detail_is(context, text):
    detail = result(context).detail
    assert detail == text, "%r != %r" % (detail, text)


@then('the detail evaluates to the same value')
def detail_round_trip(context):
    first = result(context)
    again = ExpressionParser().evaluate(first.detail)
    assert again.value == first.value, "%r != %r" % (again.value,
                                                     first.value)
    assert again.rolls == [], again.rolls


@then('{count:d} rolls were recorded')
@then('{count:d} roll was recorded')
def rolls_recorded(context, count):
    rolls = result(context).rolls
    assert len(rolls) == count, [str(r) for r in rolls]


@then('roll {n:d} was made by {function}')
def roll_made_by(context, n, function):
    record = result(context).rolls[n - 1]
    assert record.function == function, record


@then('roll {n:d} rolled {count:d} dice')
def roll_dice_count(context, n, count):
    record = result(context).rolls[n - 1]
    assert len(record.dice) == count, record


@then('the last {count:d} results are identical')
def results_identical(context, count):
    last = context.results[-count:]
    assert len(last) == count
    for other in last[1:]:
        assert other == last[0], "%s != %s" % (other, last[0])


@then('the evaluation fails with {error}')
def evaluation_fails(context, error):
    cls = getattr(errors, error)
    assert isinstance(context.error, cls), \
        "Expected %s, got %r" % (error, context.error)


@then('the error message contains "{text}"')
def error_contains(context, text):
    assert text in str(context.error), str(context.error)


@then('the error names "{name}"')
def error_names(context, name):
    assert context.error.name == name, context.error.name


@then('no roll context is current')
def no_current_context(context):
    assert RollContext.current() is None, RollContext.current()


@when('{count:d} threads each evaluate "{text}" with seed {seed:d}')
def threads_evaluate(context, count, text, seed):
    results = [None] * count
    failures = []
    barrier = threading.Barrier(count)

    def run(i):
        try:
            barrier.wait()
            results[i] = context.parser.evaluate(text, seed=seed)
        except Exception as e:
            failures.append(e)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not failures, failures
    context.results = results


@when('{count:d} threads each evaluate "{text}"')
def threads_evaluate_unseeded(context, count, text):
    results = [None] * count
    failures = []

    def run(i):
        try:
            results[i] = context.parser.evaluate(text)
        except Exception as e:
            failures.append(e)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not failures, failures
    context.results = results


@then('every thread got the same result')
def threads_same(context):
    first = context.results[0]
    for other in context.results[1:]:
        assert other == first, "%s != %s" % (other, first)


@then('every thread recorded only its own {count:d} rolls')
def threads_own_rolls(context, count):
    for res in context.results:
        assert len(res.rolls) == count, [str(r) for r in res.rolls]


@then('results {a:d} and {b:d} are identical')
def results_pair_identical(context, a, b):
    first, second = context.results[a - 1], context.results[b - 1]
    assert first == second, "%s != %s" % (first, second)


@when('I evaluate "{text}" with the default parser')
def evaluate_default(context, text):
    context.error = None
    context.result = dicexpr.evaluate(text)


@then('the result reads "{text}"')
def result_reads(context, text):
    assert str(result(context)) == text, str(result(context))


@when('I evaluate the text:')
def evaluate_docstring(context):
    evaluate(context, context.text)

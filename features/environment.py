import logging

from dicexpr import logs
from dicexpr.config import config
from dicexpr.parser import ExpressionParser


def add_parser_to_context(context):
    """
    Attach a fresh expression parser to the context.

    :param context: The context to attach the parser to.
    :type context: behave.runner.Context
    """
    if 'parser' not in context:
        context.parser = ExpressionParser()
    return context.parser


def before_all(context):
    """
    Send library logging to the console at the level given with
    -D loglevel=DEBUG, or the configured level.

    :type context: behave.runner.Context
    """
    level = context.config.userdata.get('loglevel')
    context.log_handler = logs.open_log(level=level, stdout=True)


def after_all(context):
    logging.getLogger().removeHandler(context.log_handler)


def before_scenario(context, scenario):
    """
    Each scenario gets its own parser, so variables and seeds never leak
    between scenarios.

    :type context: behave.runner.Context
    :type scenario: behave.model.Scenario
    """
    context.result = None
    context.error = None
    context.config_snapshot = {s: dict(config.items(s))
                               for s in config.sections()}
    add_parser_to_context(context)


def after_scenario(context, scenario):
    """
    Put back any configuration a scenario changed.

    :type context: behave.runner.Context
    :type scenario: behave.model.Scenario
    """
    for section, values in context.config_snapshot.items():
        for option, value in values.items():
            config.set(section, option, value)

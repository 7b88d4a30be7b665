import logging
from logging.handlers import TimedRotatingFileHandler

from dicexpr.config import config


def open_log(filepath=None, level=None, stdout=False):
    """
    Attach a handler to the root logger using the [logging] configuration.

    @param filepath: Log file; defaults to the configured file. Without one,
        log records go to stderr.
    @param level: Level name or number; defaults to the configured level.
    @param stdout: Force stream logging even when a file is configured.

    @return: The handler that was attached.
    @rtype: L{logging.Handler}
    """
    section = config['logging']
    if level is None:
        level = section.getdefault('level', 'WARNING')
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if filepath is None:
        filepath = section.getdefault('file', '')
    logger = logging.getLogger()  # Root logger.
    logger.setLevel(level)
    if filepath and not stdout:
        handler = TimedRotatingFileHandler(filepath, when="midnight",
                                           backupCount=7)
    else:
        handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(name)s %(message)s',
                                  '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return handler

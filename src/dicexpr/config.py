"""
The library-wide configuration store for dicexpr. Any module can import this to
interact with the configuration.

Defaults ship in the package as defaults.cfg and are read when this module is
first imported. Applications layer their own files on top with config.read().
"""
import os
import inspect
import importlib
import configparser

from dicexpr.errors import ConfigInvalid

DEFAULTS_PATH = os.path.join(os.path.dirname(__file__), 'defaults.cfg')


def object_from_path(path):
    """
    Load the object named by a dotted Python path such as
    'dicexpr.patterns.DICE_PATTERNS'.

    @raise ConfigInvalid: If the path is malformed or cannot be loaded.
    """
    try:
        mod_path, var_name = path.rsplit('.', 1)
    except ValueError:
        raise ConfigInvalid("Invalid object path: %r" % path)
    try:
        module = importlib.import_module(mod_path)
    except ImportError as e:
        raise ConfigInvalid("Cannot import %r: %s" % (mod_path, e))
    if not hasattr(module, var_name):
        raise ConfigInvalid("%r has no attribute %r" % (mod_path, var_name))
    return getattr(module, var_name)


class Config(configparser.ConfigParser):
    """
    Custom config class that adds just a little sugar.
    """
    BOOLEAN_STATES = {'1': True, 'yes': True, 'true': True, 'on': True,
                      '0': False, 'no': False, 'false': False, 'off': False,
                      'enabled': True, 'disabled': False}

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('interpolation', None)
        super(Config, self).__init__(*args, **kwargs)
        self._configSections = {}

    def getdefault(self, section, option, raw=False, vars=None, default=None):
        if self.has_option(section, option):
            return self.get(section, option, raw=raw, vars=vars)
        else:
            return default

    # Follow naming of other get*() functions.
    def getobject(self, section, option):
        """
        A convenience method which coerces the I{option} in the specified
        I{section} to an object loaded from the specified Python module path.
        """
        return object_from_path(self.get(section, option))

    def getclass(self, section, option):
        """
        A convenience method which coerces the I{option} in the specified
        I{section} to a class loaded from the specified Python module path.
        """
        obj = self.getobject(section, option)
        if inspect.isclass(obj):
            return obj
        else:
            raise ConfigInvalid("Invalid class: %r" % (obj,))

    def read_defaults(self):
        return self.read(DEFAULTS_PATH)

    def section(self, section):
        if section not in self._configSections:
            if self.has_section(section):
                self._configSections[section] = ConfigSection(self, section)
            else:
                raise configparser.NoSectionError(section)
        return self._configSections[section]

    def __getitem__(self, item):
        return self.section(item)


class ConfigSection(object):
    """
    Encapsulates a section of configuration within a ConfigParser.
    """
    def __init__(self, configParser, section):
        """
        @param configParser: The ConfigParser instance upon which to base this
            config section.
        @param section: The config section to bind to.
        """
        self.config = configParser
        self.section = section

    def __getitem__(self, item):
        return self.get(item)

    def __contains__(self, item):
        return self.config.has_option(self.section, item)

    def __iter__(self):
        for item in self.config.items(self.section):
            yield item

    def get(self, option, raw=False, vars=None):
        return self.config.get(self.section, option, raw=raw, vars=vars)

    def getdefault(self, option, default=None):
        return self.config.getdefault(self.section, option, default=default)

    def getint(self, option):
        return self.config.getint(self.section, option)

    def getboolean(self, option):
        return self.config.getboolean(self.section, option)

    def getobject(self, option):
        return self.config.getobject(self.section, option)

    def getclass(self, option):
        return self.config.getclass(self.section, option)


config = Config()
config.read_defaults()

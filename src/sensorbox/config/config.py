"""
Layered configuration for modules, using configobj.

A module's settings are read from config files that sit beside the module and are named after it.
The base file, its default and platform flavors and a user override in the home directory are
merged, validated against the schema flavor and then assigned to the module attributes
with the same names.
"""
import logging
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('temperature_sensor', 'default')
    'temperature_sensor.default'
    """
    return name if not flavor else name + '.' + flavor


def config_filename(name, directory):
    return os.path.join(directory, name + config_extension)


def load_config_file_base(file, must_exist=True, spec=False):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :param spec:        when True, the file is a schema of validation checks.
    :return: The ConfigObj instance for the file.
    """
    if not must_exist and not os.path.exists(file):
        return ConfigObj(list_values=False, _inspec=True) if spec else ConfigObj()
    try:
        if spec:
            return ConfigObj(file, list_values=False, _inspec=True, file_error=must_exist)
        return ConfigObj(file, interpolation='Template', file_error=must_exist)
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, flavor=None, spec=False) -> ConfigObj:
    """
    Loads a flavor of a config file, named after the base, followed by a period and the flavor.
    A missing file gives an empty configuration.
    """
    file = config_filename(config_flavor(name, flavor), directory)
    return load_config_file_base(file, False, spec)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser('~/' + name + config_extension)


def load_config(name, directory):
    """
    Loads all the configuration files that relate to the given name, in this order,
    later files taking precedence:
    - the default flavor
    - the platform flavor
    - the user override
    - the base configuration
    The result is validated against the schema flavor, which also converts the values to their
    declared types.
    :raises ConfigObjError: when the merged configuration fails validation
    """
    config = ConfigObj()
    config.merge(config_flavor_file(name, directory, 'default'))
    config.merge(config_flavor_file(name, directory, os_name()))
    config.merge(load_config_file_base(user_config_file(name), must_exist=False))
    config.merge(config_flavor_file(name, directory))

    config.configspec = config_flavor_file(name, directory, 'schema', spec=True)
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        errors = ['.'.join(sections + [key or '']) for sections, key, _ in flatten_errors(config, result)]
        raise ConfigObjError("the config file %s failed validation %s" % (name, errors))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the configuration section at the given path, or None if there is no such section.
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf(conf: Section, target):
    """
    Sets the attributes of target that have the same name as a value in the configuration.
    Values with no matching attribute are not applied.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)
        else:
            logger.debug("no attribute %s on %s", k, target)


def apply_conf_path(conf: Section, name_parts, target):
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)


def configure_module(module, config_name=None):
    """
    Applies the configuration to the given module.
    The settings live in a config file beside the module source, named after the module
    unless config_name is given. Within the file, the settings are nested in sections
    that follow the module's fully qualified name, e.g. [sensorbox] [[devices]] [[[temperature_sensor]]]
    """
    if not module.__package__:
        raise ConfigObjError('module %s has no package defined' % module.__name__)
    fqname = module.__name__
    if not config_name:
        config_name = fqname.split('.')[-1]
    conf = load_config(config_name, os.path.dirname(module.__file__))
    apply_conf_path(conf, fqname.split('.'), module)
    return conf

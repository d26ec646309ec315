"""
Utilities for loading and applying the configuration of the collaborative folders service.

Configuration data is a (nested) dictionary, typically read from a YAML or JSON file.
Components accept a dictionary of parameters at construction time and raise a
:py:class:`ConfigurationException` if a required parameter is missing or malformed.
"""
import os, json, logging
from collections.abc import Mapping
from copy import deepcopy
from pathlib import Path

import yaml

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_log_handler = None

global_logdir = None
global_logfile = None

class ConfigurationException(Exception):
    """
    an exception indicating a missing or invalid configuration parameter
    """

    def __init__(self, message: str=None, cause: Exception=None):
        if not message:
            message = "Configuration error"
            if cause:
                message += ": " + str(cause)
        super(ConfigurationException, self).__init__(message)
        self.cause = cause

def load_from_file(configfile):
    """
    read the configuration from the given file and return it as a dictionary.  The file
    format is determined by its extension: ".json" files are read as JSON; all others are
    read as YAML.

    :param str|Path configfile:  the path to the configuration file
    :raises ConfigurationException:  if the file cannot be read or parsed
    """
    configfile = Path(configfile)
    try:
        with open(configfile) as fd:
            if configfile.suffix == ".json":
                data = json.load(fd)
            else:
                data = yaml.safe_load(fd)
    except (OSError, ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException(f"{configfile}: unable to load configuration: {str(ex)}",
                                     cause=ex) from ex

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigurationException(f"{configfile}: configuration is not a dictionary")
    return data

resolve_configuration = load_from_file

def merge_config(primary: Mapping, defaults: Mapping) -> Mapping:
    """
    merge two configurations, with values in ``primary`` overriding those in ``defaults``.
    Nested dictionaries are merged recursively; all other values are replaced wholesale.
    Neither input is modified.
    """
    out = deepcopy(defaults)
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = deepcopy(val)
    return out

def configure_log(logfile: str=None, level: int=None, format: str=None, config: Mapping=None,
                  addstderr: bool=False):
    """
    configure the root logger to write messages to a file.  Values given as arguments override
    those found in ``config``, which supports the parameters ``logfile``, ``logdir``,
    ``loglevel``, and ``format``.  A relative ``logfile`` is taken to be relative to ``logdir``
    (or the current directory if not set).
    """
    global _log_handler, global_logdir, global_logfile
    if not config:
        config = {}

    if not logfile:
        logfile = config.get('logfile', 'collabfolders.log')
    if not os.path.isabs(logfile):
        logdir = config.get('logdir', os.environ.get('CF_LOG_DIR', '.'))
        logfile = os.path.join(logdir, logfile)
    global_logdir = os.path.dirname(logfile)
    global_logfile = logfile

    if level is None:
        level = config.get('loglevel', logging.INFO)
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
    if not format:
        format = config.get('format', LOG_FORMAT)

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
    _log_handler = logging.FileHandler(logfile)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    rootlog.setLevel(level)

    if addstderr:
        hdlr = logging.StreamHandler()
        hdlr.setFormatter(logging.Formatter(format))
        rootlog.addHandler(hdlr)

    rootlog.info("FYI: Writing log messages to %s", logfile)
    return rootlog

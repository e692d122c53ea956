#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import copy
import logging
from logging.config import dictConfig

LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG
}

CONFIG_DEFAULTS = dict(
    version=1,
    disable_existing_loggers=False,

    root={"level": "INFO", "handlers": ["console"]},
    loggers={
        "cgibridge": {
            "level": "INFO",
            "handlers": [],
            "propagate": True,
            "qualname": "cgibridge"
        }
    },
    handlers={
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "generic",
            "stream": "ext://sys.stdout"
        }
    },
    formatters={
        "generic": {
            "format": "%(asctime)s [%(process)d] [%(levelname)s] %(message)s",
            "datefmt": "[%Y-%m-%d %H:%M:%S %z]",
            "class": "logging.Formatter"
        }
    }
)


def setup_logging(loglevel="info", logconfig_dict=None):
    """Configure logging for an application embedding cgibridge.

    ``logconfig_dict`` entries are merged over :data:`CONFIG_DEFAULTS`
    and then the ``cgibridge`` logger is set to ``loglevel``.
    """
    config = copy.deepcopy(CONFIG_DEFAULTS)
    if logconfig_dict:
        config.update(logconfig_dict)

    level = LOG_LEVELS.get(loglevel.lower(), logging.INFO)
    config["loggers"].setdefault("cgibridge", {})["level"] = \
        logging.getLevelName(level)
    dictConfig(config)
    return logging.getLogger("cgibridge")

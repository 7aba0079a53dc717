"""Package logger.

Every module logs through ``doctrack_logger`` and passes structured context
with ``extra={...}``. Set ``LOG_JSON=1`` to emit one JSON object per record.
"""

import logging
import os
import sys

from pythonjsonlogger.json import JsonFormatter

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_JSON = os.getenv('LOG_JSON', '0').lower() in ('1', 'true', 'yes')

TEXT_FORMAT = '%(asctime)s - %(name)s:%(levelname)s: %(filename)s:%(lineno)s - %(message)s'
JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def get_formatter(json_output: bool = LOG_JSON) -> logging.Formatter:
    if json_output:
        return JsonFormatter(JSON_FORMAT, rename_fields={'levelname': 'level'})
    return logging.Formatter(TEXT_FORMAT)


def get_handler(json_output: bool = LOG_JSON) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(get_formatter(json_output))
    return handler


doctrack_logger = logging.getLogger('doctrack')
doctrack_logger.setLevel(LOG_LEVEL)
doctrack_logger.propagate = False
if not doctrack_logger.handlers:
    doctrack_logger.addHandler(get_handler())

import logging
import os
import sys

LOG_LEVEL_ENV = "SYMSERIES_LOG_LEVEL"


def setup_logging(level=None, format_string='%(asctime)s - %(name)s - %(levelname)s - %(message)s'):
    """Configures basic logging to stdout.

    The level defaults to the ``SYMSERIES_LOG_LEVEL`` environment variable,
    or INFO when it is unset.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout
    )


# Setup logging when this module is imported
setup_logging()

logger = logging.getLogger("symseries")

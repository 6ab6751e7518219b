'''
universal logger
'''
import logging
import sys

from .config import settings

def setup_logger(level: str = settings.LOG_LEVEL):
    """
    Configures and returns the application logger.
    The ledger sweep logs every lesson at DEBUG, so keep INFO outside of debugging.
    """
    logger = logging.getLogger('TL-backend')
    logger.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        '%(asctime)s - %(module)s.%(funcName)s - %(levelname)s\n - %(message)s'
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)

    return logger

# Create a single logger instance to be imported by other modules
log = setup_logger()

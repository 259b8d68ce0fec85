import logging
import sys


def setup_logging(level: int = logging.INFO):
    '''Configure the root logger for the engine and its collaborators.'''
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # requests/urllib3 are chatty at INFO when the ranking API is polled
    logging.getLogger('urllib3').setLevel(max(level, logging.WARNING))

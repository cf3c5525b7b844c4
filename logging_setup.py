"""
Root logging configuration with SAS signature redaction
"""

import logging
import re
import sys

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(message)s'

_SIG_PATTERN = re.compile(r'(?<=[?&]sig=)[^&\s]+')


class SasSignatureFilter(logging.Filter):
    """Replaces the value of any ``sig=`` query parameter with [REDACTED].

    The rest of the query string (permissions, validity window) stays
    readable in the log; without the signature the token is useless.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _SIG_PATTERN.sub('[REDACTED]', str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(
                _SIG_PATTERN.sub('[REDACTED]', arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def setup_logging(level: str = 'INFO') -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if getattr(setup_logging, '_configured', False):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SasSignatureFilter())
    root.handlers[:] = [handler]
    setup_logging._configured = True

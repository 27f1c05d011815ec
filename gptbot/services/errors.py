"""Process-wide error reporting (Sentry)."""
import logging

import sentry_sdk

logger = logging.getLogger(__name__)


def init_sentry(dsn: str) -> bool:
    """Initialise Sentry when a DSN is configured.

    Returns whether Sentry was enabled.
    """
    if not dsn:
        logger.info("SENTRY_DSN not set, error reporting disabled")
        return False

    sentry_sdk.init(dsn=dsn, traces_sample_rate=1.0)
    logger.info("Sentry error reporting enabled")
    return True


def report_exception(exc: BaseException, message: str) -> None:
    """Log *exc* with its traceback and send it to Sentry.

    ``capture_exception`` is a no-op when Sentry was never initialised.
    """
    logger.error("%s: %s", message, exc, exc_info=exc)
    sentry_sdk.capture_exception(exc)

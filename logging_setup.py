# logging_setup.py
import logging, os, sys

def init_logging(level: str = None):
    level = (level or os.getenv("REPORTS_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(level)

    # stdout handler: INFO and below
    h_out = logging.StreamHandler(sys.stdout)
    h_out.setLevel(logging.DEBUG)
    h_out.addFilter(lambda r: r.levelno <= logging.INFO)

    # stderr handler: WARNING and above
    h_err = logging.StreamHandler(sys.stderr)
    h_err.setLevel(logging.WARNING)

    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    h_out.setFormatter(fmt)
    h_err.setFormatter(fmt)

    # reset handlers (avoid dupes on redeploy)
    root.handlers[:] = [h_out, h_err]

    logging.getLogger("werkzeug").setLevel(logging.DEBUG if level == "DEBUG" else logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logging.getLogger("reports")


def redact(text, secret: str) -> str:
    """Strip a secret (e.g. the bot token inside api.telegram.org URLs) from log text."""
    s = str(text)
    return s.replace(secret, "***") if secret else s

import logging
import sys


class _QuietThirdParty(logging.Filter):
    """Let our own modules through; only warnings and above from libraries."""

    OWN_PREFIXES = ("app", "auth", "services", "ownership", "task_filters", "task_stats")

    def filter(self, record):
        if record.name.split(".")[0] in self.OWN_PREFIXES:
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level="INFO"):
    """Configure the root logger once. Repeated calls replace the handler."""
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        if getattr(h, "_task_api_handler", False):
            root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    handler.addFilter(_QuietThirdParty())
    handler._task_api_handler = True
    root.addHandler(handler)

    logging.captureWarnings(True)

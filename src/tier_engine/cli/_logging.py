import logging
import sys


def configure_logging(*, verbose: bool = False) -> None:
    """Send engine log records to stderr; ``verbose`` adds debug detail."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s — %(message)s", datefmt="%H:%M:%S"))
    root.addHandler(handler)

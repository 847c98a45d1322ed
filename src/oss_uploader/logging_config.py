import logging

_CONFIGURED = False


def configure_logging(debug: bool = False) -> None:
    """Install the single stderr handler used for diagnostics.

    Called once from ``main``; later calls are no-ops.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)

    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    # botocore is extremely chatty at DEBUG
    for name in ("botocore", "boto3", "s3transfer", "urllib3", "httpcore"):
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)

    _CONFIGURED = True

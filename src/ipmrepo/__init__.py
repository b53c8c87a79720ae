"""ipmrepo: repository catalog and Debian package conversion for ipak."""

import logging

import httpx
from rich.logging import RichHandler

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            rich_tracebacks=True,
            tracebacks_suppress=[httpx],
        )
    ],
)
logging.getLogger("httpx").setLevel(logging.WARNING)

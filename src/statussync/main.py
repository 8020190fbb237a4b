"""ASGI entry point: ``uvicorn statussync.main:app``."""

import uvicorn

from statussync.api import create_app
from statussync.config import get_settings

app = create_app()


def run() -> None:
    """Console script entry point."""
    settings = get_settings()
    uvicorn.run(
        "statussync.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()

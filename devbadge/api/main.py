"""Dashboard entry point"""

import uvicorn

from devbadge.api.app import create_app
from devbadge.api.core.config import get_settings
from devbadge.shared.logging import NOISY_LOGGERS, setup_logging


def run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, quiet=(*NOISY_LOGGERS, "uvicorn.access"))
    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()

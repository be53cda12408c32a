# mockshop/__main__.py
import uvicorn

from mockshop.config import load_settings
from mockshop.logger import setup_logging


def run() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "mockshop.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    run()

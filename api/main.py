import logging

import uvicorn

from api.app import create_app
from db.config import get_settings

logging.basicConfig(
    format="%(levelname)s::%(asctime)s::%(filename)s::%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)

app = create_app()


def main():
    settings = get_settings()
    uvicorn.run("api.main:app", host=settings.host, port=settings.port, log_level=settings.logging_level.lower())


if __name__ == "__main__":
    main()

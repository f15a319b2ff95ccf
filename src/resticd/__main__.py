import logging

import uvicorn

from resticd.settings import Settings


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = Settings()
    uvicorn.run("resticd:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

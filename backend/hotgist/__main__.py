"""Run the API with uvicorn: ``python -m hotgist``."""

import uvicorn

from hotgist.settings import settings


def main() -> None:
    uvicorn.run("hotgist.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()

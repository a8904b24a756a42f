"""Run the FileDesk server: ``python -m filedesk``."""

import uvicorn

from filedesk import config


def main() -> None:
    settings = config.load()
    uvicorn.run(
        "filedesk.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

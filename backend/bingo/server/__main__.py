"""Run the bingo server: ``python -m bingo.server``."""

import uvicorn

from bingo.server.settings import BingoServerSettings


def main() -> None:
    settings = BingoServerSettings()
    uvicorn.run(
        "bingo.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

"""Run the API with uvicorn: `python -m fitness_api`."""

import uvicorn

from fitness_api.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "fitness_api.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

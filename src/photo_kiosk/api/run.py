"""Run the photo kiosk API with uvicorn."""

import uvicorn

from photo_kiosk.config import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(
        "photo_kiosk.api.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

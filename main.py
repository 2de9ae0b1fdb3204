"""Simple entrypoint to run the personal stylist API locally."""

import os

import uvicorn

from stylist_app.logging_config import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "server.api:get_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        reload=False,
    )


if __name__ == "__main__":
    main()

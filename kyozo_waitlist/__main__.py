"""Run the waitlist web server: ``python -m kyozo_waitlist``."""

import os

import uvicorn

from kyozo_waitlist.logging_setup import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "kyozo_waitlist.api:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()

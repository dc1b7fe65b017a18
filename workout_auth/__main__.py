"""
Serve the API with uvicorn.

Run with:  python -m workout_auth
           workout-auth
           uvicorn workout_auth.api.main:app --reload
"""

import uvicorn

from workout_auth.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "workout_auth.api.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

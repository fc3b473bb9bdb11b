"""
Run the API with uvicorn: `python -m pontourbano`.

Host and port come from BACKEND_HOST / PORT, the same settings the app reads.
"""

import uvicorn

from pontourbano.config import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(
        "pontourbano.main:app",
        host=settings.backend_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()

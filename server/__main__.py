"""CLI entrypoint for launching the estimation service."""

import uvicorn

from server.core.config import SERVER_HOST, SERVER_PORT, SERVER_RELOAD


def main() -> None:
    uvicorn.run(
        "server.api:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=SERVER_RELOAD,
    )


if __name__ == "__main__":
    main()

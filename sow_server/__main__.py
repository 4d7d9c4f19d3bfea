"""CLI entrypoint for launching the FastAPI application."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "sow_server.api:app",
        host=os.getenv("SOW_HOST", "0.0.0.0"),
        port=int(os.getenv("SOW_PORT", "8000")),
        reload=False,
    )


if __name__ == "__main__":
    main()

"""Module entrypoint for running the invoicing API server."""

import os

import uvicorn


def main() -> None:
    host = os.getenv("INVOICER_HOST", "0.0.0.0")
    port = int(os.getenv("INVOICER_PORT", "8000"))
    uvicorn.run("invoicer.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()

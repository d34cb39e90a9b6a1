"""
ASGI entry point.

    uvicorn server.asgi:app --app-dir backend

or run this module directly to serve on $PORT (default 8080).
"""

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=app.state.config.port,
        log_level=app.state.config.log_level.lower(),
    )

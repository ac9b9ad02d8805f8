"""Run the backend with uvicorn: ``python -m anonchat``."""
import uvicorn

from anonchat.config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run(
        "anonchat.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        log_level=config.server.log_level,
    )


if __name__ == "__main__":
    main()

"""
Development entry point.
Run with `python main.py` or `uvicorn groundcrew.main:app`.
"""
from groundcrew.core.config import get_settings
from groundcrew.main import app  # noqa: F401

settings = get_settings()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "groundcrew.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )

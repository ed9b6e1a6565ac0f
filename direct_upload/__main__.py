"""
Run the upload API with uvicorn.

Usage:
    python -m direct_upload
    direct-upload-api
"""
import uvicorn

from direct_upload.config import settings


def main():
    uvicorn.run(
        "direct_upload.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        # Logging is configured by the app lifespan
        log_config=None,
    )


if __name__ == "__main__":
    main()

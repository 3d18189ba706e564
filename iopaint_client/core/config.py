import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring {name}={value!r}: expected a number of seconds")
        return None


class Settings:
    PROJECT_NAME: str = "IOPaint Client"

    # IOPaint backend, including the API prefix
    BACKEND_URL: str = os.getenv("IOPAINT_BACKEND", "http://127.0.0.1:8080/api/v1")

    # None disables the client-side timeout; inpainting can take minutes
    REQUEST_TIMEOUT: float | None = _optional_float("IOPAINT_TIMEOUT")

    # Output
    OUTPUT_DIR: str = os.getenv("IOPAINT_OUTPUT_DIR", os.path.join(os.getcwd(), "outputs"))

    LOG_LEVEL: str = os.getenv("IOPAINT_LOG_LEVEL", "INFO")

settings = Settings()

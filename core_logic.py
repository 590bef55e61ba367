import os
import logging
from logging.handlers import RotatingFileHandler

from fastapi import HTTPException, status

from draper import DraperError, WidthMismatch

# --- LOGGING SETUP ---

def setup_logging() -> logging.Logger:
    """Configure structured logging with rotation"""
    logger = logging.getLogger("draper_service")
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)

        log_dir = os.path.join(os.path.dirname(__file__), "logs")
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=10_485_760,
            backupCount=5
        )
        file_handler.setLevel(logging.INFO)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )
        console_handler.setFormatter(formatter)
        file_handler.setFormatter(formatter)

        logger.addHandler(console_handler)
        logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# --- CUSTOM EXCEPTIONS (REQUIRED BY ROUTERS) ---

class ValidationException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class UnprocessableException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)

class ResourceNotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class ConflictException(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


def http_error_for(exc: DraperError) -> HTTPException:
    """Maps a cipher error onto the HTTP exception the API should raise"""
    if isinstance(exc, WidthMismatch):
        return UnprocessableException(str(exc))
    return ValidationException(str(exc))

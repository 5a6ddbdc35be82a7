"""
Service error to HTTP status mapping
"""
from fastapi import HTTPException, status


def http_error(e: ValueError) -> HTTPException:
    """404 for unknown ids, 400 for every other rejected request"""
    message = str(e)
    if message.endswith("not found"):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class SlotTakenError(Exception):
    """Another active appointment already holds the requested slot."""

    def __init__(self, doctor_id: str, date: str, time: str):
        super().__init__(f"Slot {time} on {date} for doctor {doctor_id} is already booked")
        self.doctor_id = doctor_id
        self.date = date
        self.time = time


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )

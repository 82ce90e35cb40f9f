import uvicorn

from clinic_booking.config import load_settings


def main():
    """Run the FastAPI application with uvicorn server."""
    settings = load_settings()
    uvicorn.run("clinic_booking.app:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()

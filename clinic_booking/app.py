"""FastAPI HTTP and WebSocket surface for clinic appointment booking."""
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from clinic_booking import __version__
from clinic_booking.errors import BookingError
from clinic_booking.logging_config import get_logger, setup_structured_logging
from clinic_booking.models import BookingRequest, BookingStatus, ProfileUpdate, Turn
from clinic_booking.services import Services, build_services
from clinic_booking.slots import resolve_selection

logger = get_logger(__name__)


# ----------------------------- Request bodies -----------------------------
class LoginRequest(BaseModel):
    cpf: str = Field(..., description="11-digit CPF, punctuation allowed")
    birth_date: str = Field(..., description="ISO birth date, YYYY-MM-DD")


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class StatusUpdate(BaseModel):
    status: BookingStatus


class CityCreate(BaseModel):
    name: str


class ClinicCreate(BaseModel):
    city_id: int
    name: str
    address: str = ""


class SpecialtyCreate(BaseModel):
    clinic_id: int
    name: str
    doctors: list[str] = Field(default_factory=list)


class SlotCreate(BaseModel):
    clinic_id: int
    specialty_id: int
    date: str
    turn: Turn
    total: int


def get_services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter()


@router.get("/")
async def root():
    return {"success": True, "message": "Clinic booking API running"}


@router.get("/health")
async def health_check():
    return {"success": True, "status": "healthy", "version": __version__}


# ----------------------------- Patients -----------------------------
@router.post("/api/auth/login")
def login(body: LoginRequest, services: Services = Depends(get_services)):
    return services.identity.login(body.cpf, body.birth_date).model_dump(mode="json")


@router.get("/api/users/{user_id}")
def get_user(user_id: str, services: Services = Depends(get_services)):
    user = services.identity.get_by_id(user_id)
    return {"success": True, "user": user.model_dump(mode="json")}


@router.put("/api/users/{user_id}")
def update_user(user_id: str, body: ProfileUpdate, services: Services = Depends(get_services)):
    user = services.identity.update_profile(user_id, body)
    return {"success": True, "user": user.model_dump(mode="json")}


@router.get("/api/users/{user_id}/bookings")
def list_user_bookings(user_id: str, services: Services = Depends(get_services)):
    services.identity.get_by_id(user_id)
    bookings = services.bookings.list_by_user(user_id)
    return {"success": True, "bookings": [b.model_dump(mode="json") for b in bookings]}


# ----------------------------- Reference data -----------------------------
@router.get("/api/cities")
def list_cities(services: Services = Depends(get_services)):
    return {"success": True, "cities": services.reference.list_cities()}


@router.get("/api/cities/{city_id}/clinics")
def list_clinics(city_id: str, services: Services = Depends(get_services)):
    return {"success": True, "clinics": services.reference.list_clinics(city_id)}


@router.get("/api/clinics/{clinic_id}/specialties")
def list_specialties(clinic_id: str, services: Services = Depends(get_services)):
    return {"success": True, "specialties": services.reference.list_specialties(clinic_id)}


@router.get("/api/clinics/{clinic_id}/specialties/{specialty_id}/doctors")
def list_doctors(clinic_id: str, specialty_id: str, services: Services = Depends(get_services)):
    return {"success": True, "doctors": services.reference.list_doctors(clinic_id, specialty_id)}


@router.get("/api/clinics/{clinic_id}/specialties/{specialty_id}/dates")
def available_dates(
    clinic_id: str,
    specialty_id: str,
    doctor: str | None = None,
    services: Services = Depends(get_services),
):
    dates = services.availability.compute_available_dates(clinic_id, specialty_id, doctor)
    return {"success": True, "available_dates": [d.model_dump(mode="json") for d in dates]}


@router.post("/api/selection")
def resolve(selection: dict[str, str | None], services: Services = Depends(get_services)):
    """Clean a partial city → … → time selection and return the next step's options."""
    resolution = resolve_selection(services.slots, selection)
    return {
        "success": True,
        "selection": resolution.selection,
        "next": resolution.next_slot,
        "options": resolution.options,
        "complete": resolution.complete,
    }


# ----------------------------- Bookings -----------------------------
@router.post("/api/bookings", status_code=status.HTTP_201_CREATED)
def create_booking(body: BookingRequest, services: Services = Depends(get_services)):
    booking = services.bookings.create(body)
    return {"success": True, "booking": booking.model_dump(mode="json")}


@router.get("/api/bookings/{booking_id}")
def get_booking(booking_id: str, services: Services = Depends(get_services)):
    return {"success": True, "booking": services.bookings.get(booking_id).model_dump(mode="json")}


@router.post("/api/bookings/{booking_id}/cancel")
def cancel_booking(booking_id: str, services: Services = Depends(get_services)):
    booking = services.bookings.cancel(booking_id)
    return {"success": True, "booking": booking.model_dump(mode="json")}


# ----------------------------- Admin -----------------------------
@router.post("/api/admin/login")
def admin_login(body: AdminLoginRequest, services: Services = Depends(get_services)):
    return {"success": True, "admin": services.admin.login(body.username, body.password)}


@router.get("/api/admin/bookings")
def admin_list_bookings(services: Services = Depends(get_services)):
    bookings = services.bookings.list_all()
    return {"success": True, "bookings": [b.model_dump(mode="json") for b in bookings]}


@router.put("/api/admin/bookings/{booking_id}/status")
def admin_set_status(booking_id: str, body: StatusUpdate, services: Services = Depends(get_services)):
    booking = services.bookings.set_status(booking_id, body.status)
    return {"success": True, "booking": booking.model_dump(mode="json")}


@router.get("/api/admin/stats")
def admin_stats(services: Services = Depends(get_services)):
    return {"success": True, "stats": services.admin.stats().model_dump()}


@router.get("/api/admin/clinics")
def admin_list_clinics(services: Services = Depends(get_services)):
    return {"success": True, "clinics": services.reference.list_all_clinics()}


@router.get("/api/admin/specialties")
def admin_list_specialties(services: Services = Depends(get_services)):
    return {"success": True, "specialties": services.reference.list_all_specialties()}


@router.post("/api/admin/cities", status_code=status.HTTP_201_CREATED)
def admin_add_city(body: CityCreate, services: Services = Depends(get_services)):
    return {"success": True, "city": services.reference.add_city(body.name)}


@router.post("/api/admin/clinics", status_code=status.HTTP_201_CREATED)
def admin_add_clinic(body: ClinicCreate, services: Services = Depends(get_services)):
    clinic = services.reference.add_clinic(body.city_id, body.name, body.address)
    return {"success": True, "clinic": clinic}


@router.post("/api/admin/specialties", status_code=status.HTTP_201_CREATED)
def admin_add_specialty(body: SpecialtyCreate, services: Services = Depends(get_services)):
    specialty = services.reference.add_specialty(body.clinic_id, body.name, body.doctors)
    return {"success": True, "specialty": specialty}


@router.get("/api/admin/slots")
def admin_list_slots(services: Services = Depends(get_services)):
    return {"success": True, "slots": [s.model_dump(mode="json") for s in services.admin.list_slots()]}


@router.post("/api/admin/slots", status_code=status.HTTP_201_CREATED)
def admin_add_slot(body: SlotCreate, services: Services = Depends(get_services)):
    slot = services.admin.add_slot(body.clinic_id, body.specialty_id, body.date, body.turn, body.total)
    return {"success": True, "slot": slot.model_dump(mode="json")}


@router.delete("/api/admin/slots/{slot_id}")
def admin_remove_slot(slot_id: str, services: Services = Depends(get_services)):
    services.admin.remove_slot(slot_id)
    return {"success": True}


# ----------------------------- Booking wizard -----------------------------
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Step-by-step booking conversation; one JSON message in, one reply out."""
    await websocket.accept()
    wizard = websocket.app.state.services.wizard

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message_data = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"success": False, "error": "Malformed JSON"}))
                continue

            thread_id: str | None = message_data.get("thread_id")
            user_id: str | None = message_data.get("user_id")
            message: str | None = message_data.get("message")

            if not thread_id or not user_id or message is None:
                await websocket.send_text(
                    json.dumps({"success": False, "error": "Missing thread_id, user_id or message"})
                )
                continue

            response = await wizard.process_message(thread_id, user_id, message)
            await websocket.send_text(
                json.dumps({"success": True, "thread_id": thread_id, "message": response})
            )

    except WebSocketDisconnect:
        logger.info("wizard_disconnected")


# ----------------------------- Error envelope -----------------------------
async def booking_error_handler(request: Request, exc: BookingError):
    logger.info("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "code": exc.code},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("request_validation_failed", path=request.url.path, errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": "Validation Error", "detail": str(exc.errors()), "code": "VALIDATION_ERROR"},
    )


def create_app(services: Services | None = None) -> FastAPI:
    services = services or build_services()
    setup_structured_logging(services.settings.log_level)

    application = FastAPI(title="Clinic Appointment Booking", version=__version__)
    application.state.services = services
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(BookingError, booking_error_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.include_router(router)
    return application


app = create_app()

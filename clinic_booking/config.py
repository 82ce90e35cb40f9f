"""Configuration for the clinic booking service.

Scheduling constants and the seed catalogue live here; deployment knobs are read from the
environment (a local ``.env`` file is honoured).
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

MORNING = "morning"
AFTERNOON = "afternoon"

TURN_TIMES: dict[str, list[str]] = {
    MORNING: ["08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00", "11:30"],
    AFTERNOON: ["14:00", "14:30", "15:00", "15:30", "16:00", "16:30", "17:00", "17:30"],
}

DEFAULT_HORIZON_DAYS = 30
DEFAULT_SLOT_CAPACITY = 1

BLANK_NAME_PLACEHOLDER = "Name not provided"

SEED_CITIES = [
    {
        "id": 1,
        "name": "São Paulo",
        "clinics": [
            {
                "id": 1,
                "name": "UBS Vila Madalena",
                "address": "Rua Harmonia, 123 - Vila Madalena",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dr. João Silva", "Dra. Maria Santos"]},
                    {"id": 2, "name": "Cardiologia", "doctors": ["Dr. Carlos Oliveira", "Dra. Ana Rodrigues"]},
                    {"id": 3, "name": "Pediatria", "doctors": ["Dra. Isabela Ramos", "Dr. Daniel Correia"]},
                ],
            },
            {
                "id": 2,
                "name": "UBS Jardins",
                "address": "Av. Paulista, 456 - Jardins",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dr. Pedro Costa", "Dra. Fernanda Alves"]},
                    {"id": 4, "name": "Dermatologia", "doctors": ["Dra. Fernanda Alves", "Dr. Marcos Pereira"]},
                    {"id": 5, "name": "Ginecologia", "doctors": ["Dra. Luciana Martins", "Dra. Patrícia Gomes"]},
                ],
            },
            {
                "id": 3,
                "name": "UBS Mooca",
                "address": "Rua da Mooca, 789 - Mooca",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dr. Roberto Lima", "Dra. Carla Ferreira"]},
                    {"id": 6, "name": "Ortopedia", "doctors": ["Dr. Thiago Moreira", "Dr. Leonardo Cardoso"]},
                    {"id": 7, "name": "Neurologia", "doctors": ["Dr. Eduardo Santos", "Dra. Beatriz Costa"]},
                ],
            },
        ],
    },
    {
        "id": 2,
        "name": "Rio de Janeiro",
        "clinics": [
            {
                "id": 4,
                "name": "UBS Copacabana",
                "address": "Av. Atlântica, 321 - Copacabana",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dr. André Barbosa", "Dra. Renata Silva"]},
                    {"id": 2, "name": "Cardiologia", "doctors": ["Dr. Felipe Rocha", "Dra. Camila Dias"]},
                    {"id": 8, "name": "Oftalmologia", "doctors": ["Dr. Ricardo Almeida", "Dr. Gustavo Nunes"]},
                ],
            },
            {
                "id": 5,
                "name": "UBS Ipanema",
                "address": "Rua Visconde de Pirajá, 654 - Ipanema",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dra. Priscila Lopes", "Dra. Larissa Teixeira"]},
                    {"id": 9, "name": "Psiquiatria", "doctors": ["Dr. Rodrigo Pinto", "Dra. Vanessa Araújo"]},
                    {"id": 10, "name": "Urologia", "doctors": ["Dr. Fábio Nascimento", "Dr. Henrique Vieira"]},
                ],
            },
        ],
    },
    {
        "id": 3,
        "name": "Belo Horizonte",
        "clinics": [
            {
                "id": 6,
                "name": "UBS Savassi",
                "address": "Rua Pernambuco, 987 - Savassi",
                "specialties": [
                    {"id": 1, "name": "Clínica Geral", "doctors": ["Dr. Bruno Machado", "Dra. Cristina Melo"]},
                    {"id": 3, "name": "Pediatria", "doctors": ["Dr. Paulo Mendes", "Dra. Juliana Souza"]},
                    {"id": 4, "name": "Dermatologia", "doctors": ["Dr. Marcos Pereira", "Dra. Fernanda Alves"]},
                ],
            },
        ],
    },
]


@dataclass(frozen=True, slots=True)
class Settings:
    data_dir: str | None = None
    horizon_days: int = DEFAULT_HORIZON_DAYS
    slot_capacity: int = DEFAULT_SLOT_CAPACITY
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_name: str = "System Administrator"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Build settings from environment variables."""
    return Settings(
        data_dir=os.getenv("CLINIC_DATA_DIR") or None,
        horizon_days=int(os.getenv("CLINIC_HORIZON_DAYS", DEFAULT_HORIZON_DAYS)),
        slot_capacity=int(os.getenv("CLINIC_SLOT_CAPACITY", DEFAULT_SLOT_CAPACITY)),
        admin_username=os.getenv("CLINIC_ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("CLINIC_ADMIN_PASSWORD", "admin123"),
        log_level=os.getenv("CLINIC_LOG_LEVEL", "INFO"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
    )

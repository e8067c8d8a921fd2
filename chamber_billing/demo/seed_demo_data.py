# chamber_billing/demo/seed_demo_data.py

from chamber_billing.core.records import record_from_dict
from chamber_billing.storage.db import DEFAULT_DB_PATH
from chamber_billing.storage.repository import initialize_schema, insert_records

conclusions = [
    {
        "id": 864,
        "registration_number": "Д-864",
        "expert": "Гомба Ю.В.",
        "status": "Виконано",
        "start_date": "2025-11-03",
        "end_date": "2025-11-03",
        "company_name": "ТОВ \"Сандерс-Виноградів\"",
        "act_number": "А-864",
        "conclusion_type": "standard",
        "models": 3,
        "positions": 10,
        "codes": 3,
        "complexity": True,
        "urgency": True,
        "discount": "Зі знижкою",
    },
    {
        "id": 865,
        "registration_number": "Д-865",
        "expert": "Палчей Я.В.",
        "status": "Не виконано",
        "start_date": "2025-11-04",
        "end_date": "2025-11-04",
        "company_name": "ТОВ \"Новітекс\"",
        "conclusion_type": "contractual",
        "pages": 5,
        "codes": 2,
        "discount": "Повна",
    },
    {
        "id": 866,
        "registration_number": "Д-866",
        "expert": "Гомба Ю.В.",
        "start_date": "2025-11-05",
        "end_date": "2025-11-05",
        "company_name": "ТОВ \"ТРІО\"",
        "is_quick_registration": True,
    },
]

certificates = [
    {
        "id": 101,
        "registration_number": "C-101",
        "expert": "Дан Т.О.",
        "status": "Виконано",
        "start_date": "2025-11-05",
        "end_date": "2025-11-06",
        "company_name": "ТОВ \"СЛІП АЙДІ УКРАЇНА\"",
        "certificate_form": "СТ-1",
        "certificate_service_type": "standard",
        "production_type": "fully_produced",
        "pages": 18,
        "units": 2,
        "positions": 5,
        "additional_pages": 2,
        "urgency": False,
    },
    {
        "id": 102,
        "registration_number": "C-102",
        "expert": "Гомба Ю.В.",
        "status": "Не виконано",
        "start_date": "2025-11-07",
        "end_date": "2025-11-08",
        "company_name": "ТОВ \"Новітекс\"",
        "certificate_form": "А",
        "certificate_service_type": "standard",
        "production_type": "sufficient_processing",
        "pages": 25,
        "units": 1,
        "positions": 12,
        "urgency": True,
    },
]


def seed(db_path: str = DEFAULT_DB_PATH):
    """Insert the demo conclusions and certificates."""
    initialize_schema(db_path)
    insert_records([record_from_dict(raw, "conclusions") for raw in conclusions], "conclusions", db_path)
    insert_records([record_from_dict(raw, "certificates") for raw in certificates], "certificates", db_path)


if __name__ == "__main__":
    seed()
    print("Demo records inserted")

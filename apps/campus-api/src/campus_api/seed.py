from __future__ import annotations

from uuid import NAMESPACE_URL, uuid5

from campus_api.repositories.service_store import ServiceRecord

CAMPUS_SERVICES: list[dict[str, object]] = [
    {
        "name": "Campus Canteen",
        "category": "Food",
        "description": "Multi-cuisine student hub serving fresh meals daily.",
        "address": "Block-A Ground Floor",
        "lat": 22.5576984,
        "lng": 88.3939082,
    },
    {
        "name": "Ladies PG",
        "category": "Private Furnished Homestay",
        "description": (
            "Located conveniently for all day-today needs and with all amenities. "
            "It's also a safe accommodation for women."
        ),
        "address": (
            "B/7A/H/7/1/4 Rani Rashmoni Garden Lane RCC ENGINEERING COLLEGE, Beliaghata, "
            "Kolkata, West Bengal 700015"
        ),
        "lat": 22.5596016,
        "lng": 88.3892188,
    },
    {
        "name": "Gents PG",
        "category": "Private Furnished Homestay",
        "description": "Affordable price within this area both for working people and students.",
        "address": "115, 2C, Beleghata Main Rd, Kulia, Beleghata, Kolkata, West Bengal 700010",
        "lat": 22.5623506,
        "lng": 88.3946016,
    },
    {
        "name": "Infectious Diseases & Beleghata General Hospital",
        "category": "Medical",
        "description": "24/7 Pharmacy providing essential medicines and first-aid kits.",
        "address": "57, Beleghata Main Rd, Subhas Sarobar Park, Phool Bagan, Beleghata, Kolkata, West Bengal 700010",
        "lat": 22.5592616,
        "lng": 88.3854612,
    },
    {
        "name": "Maa Xerox",
        "category": "Stationery Store",
        "description": "Complete academic supplies, and engineering drawing tools.",
        "address": "P 28 CIT Road Kolkata 700010, 28, CIT Rd, Kolkata, West Bengal 700010",
        "lat": 22.5631366,
        "lng": 88.3963339,
    },
    {
        "name": "Turram's : Flames and Works",
        "category": "Food",
        "description": "Popular spot for quick snacks and student networking sessions.",
        "address": "5/H/1, Gagan Sarkar Rd, Kulia, Beleghata, Kolkata, West Bengal 700010",
        "lat": 22.561993,
        "lng": 88.3956175,
    },
    {
        "name": "HELLO KOLKATA",
        "category": "Grocery Store",
        "description": "Daily essentials and packed snacks for hostel students.",
        "address": "112F, Dr SC Banerjee Rd, Kulia, Beleghata, Kolkata, West Bengal 700010",
        "lat": 22.5623361,
        "lng": 88.3957581,
    },
]


def service_id_for(name: str) -> str:
    return str(uuid5(NAMESPACE_URL, f"campuslink:service:{name}"))


def seed_records() -> list[ServiceRecord]:
    return [
        ServiceRecord(
            id=service_id_for(str(item["name"])),
            name=str(item["name"]),
            category=str(item["category"]),
            description=str(item["description"]),
            address=str(item["address"]),
            lat=float(item["lat"]),  # type: ignore[arg-type]
            lng=float(item["lng"]),  # type: ignore[arg-type]
        )
        for item in CAMPUS_SERVICES
    ]

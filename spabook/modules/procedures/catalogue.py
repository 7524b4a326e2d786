# spabook/modules/procedures/catalogue.py
"""
House treatment menu. Seeds the procedures table (init_db.py) and is the
fixed list the chat assistant is told about.
"""
from __future__ import annotations

from decimal import Decimal

DEFAULT_CATALOGUE: list[dict] = [
    {
        "name": "Masaje Relajante",
        "price": Decimal("80"),
        "duration_minutes": 60,
        "description": "Masaje corporal completo para aliviar tensiones y estrés",
    },
    {
        "name": "Facial Hidratante",
        "price": Decimal("65"),
        "duration_minutes": 45,
        "description": "Tratamiento facial profundo con hidratación intensiva",
    },
    {
        "name": "Masaje con Piedras Calientes",
        "price": Decimal("120"),
        "duration_minutes": 90,
        "description": "Terapia de relajación con piedras volcánicas",
    },
    {
        "name": "Tratamiento Corporal Detox",
        "price": Decimal("95"),
        "duration_minutes": 75,
        "description": "Envoltura corporal para eliminar toxinas",
    },
    {
        "name": "Manicura y Pedicura Spa",
        "price": Decimal("55"),
        "duration_minutes": 60,
        "description": "Cuidado completo de manos y pies",
    },
]


def catalogue_lines(items: list[dict] | None = None) -> str:
    """'1. Name - $80 (60 min): description' lines."""
    lines = []
    for i, item in enumerate(items or DEFAULT_CATALOGUE, start=1):
        price = item.get("price")
        price_txt = f"${price:g}" if price is not None else "precio a consultar"
        lines.append(
            f"{i}. {item['name']} - {price_txt} ({item['duration_minutes']} min): {item['description']}"
        )
    return "\n".join(lines)

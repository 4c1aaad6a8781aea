"""Reference data every installation starts with."""
from sqlalchemy.orm import Session

from .logging_config import get_logger
from .models import Category, Network

logger = get_logger("seed")

NETWORKS = [
    ("Amarela", "#FFD700"),
    ("Azul", "#1E90FF"),
    ("Branca", "#F5F5F5"),
    ("Vermelha", "#DC143C"),
    ("Verde", "#228B22"),
]

CATEGORIES = [
    ("GRÃOS E CEREAIS", "#8B4513", "Arroz, feijão, milho e similares"),
]


def seed_reference_data(db: Session) -> dict:
    """Idempotent: only missing networks and categories are inserted."""
    existing_networks = {color for (color,) in db.query(Network.color)}
    networks_created = 0
    for color, hex_code in NETWORKS:
        if color not in existing_networks:
            db.add(Network(color=color, hex=hex_code, description=f"Rede {color}"))
            networks_created += 1

    existing_categories = {name for (name,) in db.query(Category.name)}
    categories_created = 0
    for name, color, description in CATEGORIES:
        if name not in existing_categories:
            db.add(Category(name=name, color=color, description=description))
            categories_created += 1

    db.commit()
    logger.info(f"[SEED] networks={networks_created} categories={categories_created}")
    return {"networks_created": networks_created, "categories_created": categories_created}

"""
Network (rede) endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..error_handlers import DuplicateResourceError, ResourceNotFoundError
from ..logging_config import get_logger
from ..models import Network
from ..schemas import NetworkCreate, NetworkResponse, SeedResponse
from ..seed import seed_reference_data

logger = get_logger("api.networks")

router = APIRouter(tags=["Networks"])


@router.get("/networks", response_model=List[NetworkResponse])
def list_networks(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(Network)
    if not include_inactive:
        query = query.filter(Network.is_active.is_(True))
    return query.order_by(Network.color).all()


@router.post("/networks", response_model=NetworkResponse, status_code=status.HTTP_201_CREATED)
def create_network(payload: NetworkCreate, db: Session = Depends(get_db)):
    if db.query(Network).filter(Network.color == payload.color).first():
        raise DuplicateResourceError("Network", "color", payload.color)
    network = Network(**payload.model_dump())
    db.add(network)
    db.commit()
    db.refresh(network)
    logger.info(f"[NETWORK] created id={network.id} color={network.color}")
    return network


@router.delete("/networks/{network_id}")
def deactivate_network(network_id: int, db: Session = Depends(get_db)):
    """Soft delete; cells keep pointing at the network."""
    network = db.get(Network, network_id)
    if network is None:
        raise ResourceNotFoundError("Network", network_id)
    network.is_active = False
    db.commit()
    return {"id": network_id, "is_active": False}


@router.post("/seed", response_model=SeedResponse)
def seed(db: Session = Depends(get_db)):
    """Insert the default networks and categories if they are missing."""
    return seed_reference_data(db)

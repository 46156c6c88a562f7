"""
Business logic for simulations.
Persists the baseline projection and replays it through the prediction service for display.
"""
import json
from typing import Any, Dict, List, Tuple
from uuid import UUID

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session

from app.admin.schemas import AdminListQuery, SortOrder
from app.core.config import settings
from app.core.logger import logger, audit_log
from app.prediction.service import PredictionService
from app.simulation.calc import return_over_years
from app.simulation.models import Simulation
from app.simulation.schemas import SimulationRequest, SimulationView


class InvalidSimulationIdError(ValueError):
    """The identifier is not a well-formed simulation id."""


class SimulationNotFoundError(LookupError):
    """No simulation exists with the given id."""


SORT_COLUMNS = {
    "created_at": Simulation.created_at,
    "email": Simulation.email,
    "purchase_price": Simulation.purchase_price,
    "monthly_rent": Simulation.monthly_rent,
    "annual_fee": Simulation.annual_fee,
}


def create_simulation(db: Session, data: SimulationRequest, correlation_id: str) -> Simulation:
    """Computes the baseline projection and persists it together with the inputs."""
    results = return_over_years(data.purchase_price, data.monthly_rent, data.annual_fee, settings.SIMULATION_YEARS)

    simulation = Simulation(
        purchase_price=data.purchase_price,
        monthly_rent=data.monthly_rent,
        annual_fee=data.annual_fee,
        email=data.email.strip().lower(),
        results=json.dumps([r.model_dump() for r in results]),
        correlation_id=correlation_id
    )

    db.add(simulation)
    db.commit()
    db.refresh(simulation)

    audit_log(
        action="simulation_created",
        user=simulation.email,
        resource=f"simulation_id={simulation.id}",
        details={"correlation_id": correlation_id, "purchase_price": data.purchase_price}
    )
    logger.info(f"Simulation persisted: id={simulation.id}")

    return simulation


def validate_simulation_id(simulation_id: str) -> str:
    """Normalizes a simulation id, raising InvalidSimulationIdError when malformed."""
    try:
        return str(UUID(simulation_id))
    except (ValueError, TypeError, AttributeError):
        raise InvalidSimulationIdError("Invalid simulation ID")


def get_simulation(db: Session, simulation_id: str) -> Simulation:
    simulation_id = validate_simulation_id(simulation_id)
    simulation = db.query(Simulation).filter(Simulation.id == simulation_id).first()
    if not simulation:
        raise SimulationNotFoundError("The requested simulation could not be found")
    return simulation


async def get_simulation_with_predictions(
    db: Session,
    predictor: PredictionService,
    simulation_id: str
) -> Dict[str, Any]:
    """
    Loads a simulation and replays its inputs through the data-driven predictor.
    Shared by the public results page and the admin detail view.
    """
    simulation = SimulationView.model_validate(get_simulation(db, simulation_id))

    predictions = await predictor.predict_return_over_years(
        simulation.purchase_price,
        simulation.monthly_rent,
        simulation.annual_fee,
        len(simulation.results)
    )
    dataset_stats = await predictor.get_dataset_stats()

    return {
        "simulation": simulation,
        "predictions": predictions,
        "dataset_stats": dataset_stats,
        "has_negative_income": simulation.has_negative_income,
    }


def list_simulations(db: Session, params: AdminListQuery) -> Tuple[List[SimulationView], int]:
    """One page of simulations matching the e-mail filter, in the requested order, plus the total match count."""
    query = db.query(Simulation)

    if params.email:
        query = query.filter(func.lower(Simulation.email).contains(params.email.lower(), autoescape=True))

    total = query.count()

    direction = asc if params.sort_order == SortOrder.ASC else desc
    column = SORT_COLUMNS[params.sort_by.value]
    rows = (
        query.order_by(direction(column), desc(Simulation.id))
        .offset(params.skip)
        .limit(params.limit)
        .all()
    )

    return [SimulationView.model_validate(row) for row in rows], total


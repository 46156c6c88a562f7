"""
Server-rendered pages of the simulator: the form, its submission and the results page.
"""
import os
from typing import Any, Dict
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.logger import get_logger_with_correlation
from app.core.utils import format_currency, format_date, format_number, format_percent
from app.prediction.service import PredictionService, get_prediction_service
from app.simulation.schemas import SimulationRequest, format_validation_errors
from app.simulation.service import (
    InvalidSimulationIdError,
    SimulationNotFoundError,
    create_simulation,
    get_simulation_with_predictions,
)

# Setup templates directory
# Using absolute path to ensure it works regardless of where python is run
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))
templates.env.filters["currency"] = lambda value: format_currency(value, settings.CURRENCY)
templates.env.filters["number"] = format_number
templates.env.filters["percent"] = format_percent
templates.env.filters["date"] = format_date
templates.env.globals["app_name"] = settings.APP_NAME
templates.env.globals["locale"] = settings.LOCALE

router = APIRouter()

FORM_FIELDS = ("purchase_price", "monthly_rent", "annual_fee", "email")


def render_form(request: Request, status_code: int = 200, **context: Any) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "index.html",
        {"title": settings.APP_NAME, "form_data": {}, "errors": [], **context},
        status_code=status_code
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Simulation form"""
    return render_form(request)


@router.post("/simulate", response_class=HTMLResponse)
async def simulate(request: Request, db: Session = Depends(get_db)):
    """
    Validates the form, computes the baseline projection and persists it.
    Redirects to the results page; invalid input re-renders the form with field errors.
    """
    correlation_id = getattr(request.state, "correlation_id", None) or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    form = await request.form()
    form_data: Dict[str, str] = {field: str(form.get(field, "")) for field in FORM_FIELDS}

    try:
        data = SimulationRequest(**form_data)
    except ValidationError as e:
        errors = format_validation_errors(e)
        logger.info(f"Simulation form rejected: {[err['field'] for err in errors]}")
        return render_form(request, status_code=400, errors=errors, form_data=form_data)

    try:
        simulation = create_simulation(db, data, correlation_id)
    except ValueError as e:
        logger.info(f"Simulation rejected: {e}")
        return render_form(request, status_code=400, errors=[{"field": "form", "message": str(e)}], form_data=form_data)

    return RedirectResponse(url=f"/results/{simulation.id}", status_code=303)


@router.get("/results/{simulation_id}", response_class=HTMLResponse)
async def results(
    request: Request,
    simulation_id: str,
    db: Session = Depends(get_db),
    predictor: PredictionService = Depends(get_prediction_service)
):
    """Baseline projection side by side with the data-driven prediction."""
    try:
        context = await get_simulation_with_predictions(db, predictor, simulation_id)
    except (InvalidSimulationIdError, SimulationNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    return templates.TemplateResponse(
        request,
        "results.html",
        {"title": "Simulation Results", **context}
    )

"""
Admin pages: paginated listing of stored simulations and a detail view.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.admin.schemas import AdminListQuery, Pagination, SortField, SortOrder
from app.core.database import get_db
from app.core.logger import logger
from app.prediction.service import PredictionService, get_prediction_service
from app.simulation.service import (
    InvalidSimulationIdError,
    SimulationNotFoundError,
    get_simulation_with_predictions,
    list_simulations,
)
from app.web_routes import templates

router = APIRouter()

LISTING_TEMPLATE = "admin/simulations.html"


@router.get("/simulations", response_class=HTMLResponse)
async def simulations_list(request: Request, db: Session = Depends(get_db)):
    """
    Lists simulations.

    - **page** / **limit**: pagination (limit capped by PAGINATION_MAX_LIMIT)
    - **email**: case-insensitive substring filter
    - **sort_by** / **sort_order**: one of the whitelisted columns, asc or desc
    """
    base_context = {
        "title": "Admin - All Simulations",
        "sort_fields": [f.value for f in SortField],
        "sort_orders": [o.value for o in SortOrder],
    }

    try:
        params = AdminListQuery(**dict(request.query_params))
    except ValidationError as e:
        logger.info(f"Invalid admin listing parameters: {e.error_count()} error(s)")
        return templates.TemplateResponse(
            request,
            LISTING_TEMPLATE,
            {
                **base_context,
                "error": "Invalid pagination, filter or sort parameters",
                "simulations": [],
                "pagination": Pagination.empty(),
                "filters": AdminListQuery(),
            },
            status_code=400
        )

    simulations, total = list_simulations(db, params)

    return templates.TemplateResponse(
        request,
        LISTING_TEMPLATE,
        {
            **base_context,
            "simulations": simulations,
            "pagination": Pagination.build(params.page, params.limit, total),
            "filters": params,
        }
    )


@router.get("/simulations/{simulation_id}", response_class=HTMLResponse)
async def simulation_detail(
    request: Request,
    simulation_id: str,
    db: Session = Depends(get_db),
    predictor: PredictionService = Depends(get_prediction_service)
):
    """Simulation detail with the same prediction replay as the public results page."""
    try:
        context = await get_simulation_with_predictions(db, predictor, simulation_id)
    except (InvalidSimulationIdError, SimulationNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    return templates.TemplateResponse(
        request,
        "admin/simulation_detail.html",
        {"title": f"Simulation Details - {context['simulation'].email}", **context}
    )

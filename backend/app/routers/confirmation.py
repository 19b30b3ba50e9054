"""Confirmation page router. Rendered from query parameters only, no store read."""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from app.services.confirmation import ConfirmationView, render_confirmation_page

router = APIRouter(tags=["confirmation"])


@router.get("/confirmation", response_class=HTMLResponse)
async def confirmation_page(request: Request):
    """Printable booking confirmation."""
    view = ConfirmationView.from_query(request.query_params)
    return HTMLResponse(render_confirmation_page(view))


@router.get("/api/confirmation")
async def confirmation_data(request: Request):
    """The confirmation display model as JSON."""
    return ConfirmationView.from_query(request.query_params).to_dict()

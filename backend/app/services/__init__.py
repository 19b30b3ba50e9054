"""Services for Saifauto."""

from app.services.storage import StorageService, get_storage_service
from app.services.fleet import FleetService
from app.services.clients import ClientService
from app.services.bookings import BookingService
from app.services.notifications import (
    ConfirmationEmailSender,
    StaffMessenger,
    get_email_sender,
    get_staff_messenger,
)
from app.services.booking_workflow import BookingWorkflow, WorkflowState
from app.services.pdf_generator import PDFGenerator, get_pdf_generator

__all__ = [
    "StorageService",
    "get_storage_service",
    "FleetService",
    "ClientService",
    "BookingService",
    "ConfirmationEmailSender",
    "StaffMessenger",
    "get_email_sender",
    "get_staff_messenger",
    "BookingWorkflow",
    "WorkflowState",
    "PDFGenerator",
    "get_pdf_generator",
]
